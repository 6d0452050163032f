"""Canonical ADT addressing for repository objects.

Object names are case-insensitive on the remote side and always lower-cased
in paths.
"""

from __future__ import annotations

from typing import Dict, Tuple
from urllib.parse import quote

from sap_adt_lib.errors import UnsupportedKind

CLASS = "class"
INTERFACE = "interface"
PROGRAM = "program"
FUNCTION_GROUP = "function_group"
FUNCTION_MODULE = "function_module"
TABLE = "table"

KIND_ALIASES: Dict[str, str] = {
    "class": CLASS,
    "clas": CLASS,
    "interface": INTERFACE,
    "intf": INTERFACE,
    "program": PROGRAM,
    "prog": PROGRAM,
    "report": PROGRAM,
    "function": FUNCTION_GROUP,
    "function_group": FUNCTION_GROUP,
    "functiongroup": FUNCTION_GROUP,
    "fugr": FUNCTION_GROUP,
    "function_module": FUNCTION_MODULE,
    "functionmodule": FUNCTION_MODULE,
    "fmodule": FUNCTION_MODULE,
    "table": TABLE,
    "tabl": TABLE,
}

COLLECTION_PATHS: Dict[str, str] = {
    CLASS: "/sap/bc/adt/oo/classes",
    INTERFACE: "/sap/bc/adt/oo/interfaces",
    PROGRAM: "/sap/bc/adt/programs/programs",
    FUNCTION_GROUP: "/sap/bc/adt/functions/groups",
    TABLE: "/sap/bc/adt/ddic/tables",
}

SUPPORTED_KINDS: Tuple[str, ...] = (CLASS, INTERFACE, PROGRAM, FUNCTION_GROUP, FUNCTION_MODULE, TABLE)

ACTIVATION_PATH = "/sap/bc/adt/activation"
DISCOVERY_PATH = "/sap/bc/adt/discovery"
SEARCH_PATH = "/sap/bc/adt/repository/informationsystem/search"
PACKAGES_PATH = "/sap/bc/adt/packages"


def canonical_kind(kind: str, supported: Tuple[str, ...] = SUPPORTED_KINDS) -> str:
    key = (kind or "").strip().lower().replace("-", "_").replace(" ", "_")
    resolved = KIND_ALIASES.get(key)
    if resolved is None or resolved not in supported:
        raise UnsupportedKind(kind, supported)
    return resolved


def _segment(name: str) -> str:
    return quote(name.strip().lower(), safe="")


def collection_path(kind: str, *, group: str | None = None) -> str:
    resolved = canonical_kind(kind)
    if resolved == FUNCTION_MODULE:
        if not group:
            raise ValueError("function modules are addressed through their function group")
        return f"{COLLECTION_PATHS[FUNCTION_GROUP]}/{_segment(group)}/fmodules"
    return COLLECTION_PATHS[resolved]


def object_path(kind: str, name: str, *, group: str | None = None) -> str:
    if not name or not name.strip():
        raise ValueError("object name cannot be empty")
    return f"{collection_path(kind, group=group)}/{_segment(name)}"


def source_path(path: str) -> str:
    return f"{path.rstrip('/')}/source/main"


def package_path(name: str) -> str:
    return f"{PACKAGES_PATH}/{_segment(name)}"
