from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List

from sap_adt_lib.errors import AdtError

ADTCORE = "{http://www.sap.com/adt/core}"
LOCK_HANDLE_PATTERN = re.compile(r"<LOCK_HANDLE>(.*?)</LOCK_HANDLE>", re.DOTALL)


@dataclass(frozen=True)
class ObjectReference:
    name: str
    type: str
    uri: str
    description: str = ""
    package_name: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "uri": self.uri,
            "description": self.description,
        }
        if self.package_name is not None:
            payload["packageName"] = self.package_name
        return payload


def extract_lock_handle(payload: str | None) -> str:
    """Lock handle from a LOCK result; "" when the reply carries none."""

    if not isinstance(payload, str):
        return ""
    match = LOCK_HANDLE_PATTERN.search(payload)
    return match.group(1).strip() if match else ""


def parse_xml(text: str, *, source: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise AdtError(f"Unparseable XML returned for {source}: {exc}") from exc


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_object_references(text: str, *, source: str = "search") -> List[ObjectReference]:
    if not text or not text.strip():
        return []
    root = parse_xml(text, source=source)
    references: List[ObjectReference] = []
    for node in root.iter(f"{ADTCORE}objectReference"):
        references.append(
            ObjectReference(
                name=node.get(f"{ADTCORE}name", ""),
                type=node.get(f"{ADTCORE}type", ""),
                uri=node.get(f"{ADTCORE}uri", ""),
                description=node.get(f"{ADTCORE}description", ""),
                package_name=node.get(f"{ADTCORE}packageName"),
            )
        )
    return references


def core_attributes(text: str, *, source: str) -> Dict[str, str]:
    """adtcore:* attributes of the document root, keyed by local name."""

    root = parse_xml(text, source=source)
    return {
        _local(key): value
        for key, value in root.attrib.items()
        if key.startswith(ADTCORE)
    }


def element_to_dict(element: ET.Element) -> Dict[str, Any]:
    node: Dict[str, Any] = {"tag": _local(element.tag)}
    if element.attrib:
        node["attributes"] = {_local(key): value for key, value in element.attrib.items()}
    text = (element.text or "").strip()
    if text:
        node["text"] = text
    children = [element_to_dict(child) for child in element]
    if children:
        node["children"] = children
    return node


def activation_errors(text: str | None) -> List[str]:
    """Error-level check messages from an activation reply.

    Activation answers 200 even when the object does not compile; the
    failures are reported as msg elements of type E.
    """

    if not text or not text.strip():
        return []
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return []
    errors: List[str] = []
    for element in root.iter():
        if _local(element.tag) != "msg" or element.get("type") != "E":
            continue
        short_text = ""
        for child in element.iter():
            if _local(child.tag) == "txt" and (child.text or "").strip():
                short_text = child.text.strip()
                break
        errors.append(short_text or element.get("objDescr") or "activation error")
    return errors
