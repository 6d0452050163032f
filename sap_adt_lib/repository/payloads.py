from __future__ import annotations

from dataclasses import dataclass
from typing import Dict
from xml.sax.saxutils import quoteattr

from . import paths

ADTCORE_NS = "http://www.sap.com/adt/core"

CREATE_CONTENT_TYPES: Dict[str, str] = {
    paths.CLASS: "application/vnd.sap.adt.oo.classes.v4+xml",
    paths.INTERFACE: "application/vnd.sap.adt.oo.interfaces.v5+xml",
    paths.PROGRAM: "application/vnd.sap.adt.programs.programs.v2+xml",
    paths.FUNCTION_GROUP: "application/vnd.sap.adt.functions.groups.v3+xml",
    paths.FUNCTION_MODULE: "application/vnd.sap.adt.functions.fmodules.v3+xml",
}

LOCK_ACCEPT = "application/vnd.sap.as+xml"
_XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'


@dataclass(frozen=True)
class CreatePayload:
    collection: str
    body: str
    content_type: str


def _core_attrs(name: str, description: str, language: str, type_code: str) -> str:
    return (
        f"    adtcore:description={quoteattr(description)}\n"
        f"    adtcore:language={quoteattr(language)}\n"
        f"    adtcore:name={quoteattr(name)}\n"
        f"    adtcore:type={quoteattr(type_code)}"
    )


def _package_ref(package: str) -> str:
    return f"  <adtcore:packageRef adtcore:name={quoteattr(package)}/>"


def class_payload(
    name: str,
    description: str,
    package: str,
    language: str,
    *,
    final: bool = True,
    visibility: str = "public",
) -> CreatePayload:
    body = "\n".join(
        [
            _XML_HEADER,
            "<class:abapClass",
            '    xmlns:class="http://www.sap.com/adt/oo/classes"',
            f'    xmlns:adtcore="{ADTCORE_NS}"',
            _core_attrs(name, description, language, "CLAS/OC"),
            '    adtcore:abapLanguageVersion="cloudDevelopment"',
            f"    class:final={quoteattr('true' if final else 'false')}",
            f"    class:visibility={quoteattr(visibility)}>",
            _package_ref(package),
            "</class:abapClass>",
        ]
    )
    return CreatePayload(paths.collection_path(paths.CLASS), body, CREATE_CONTENT_TYPES[paths.CLASS])


def interface_payload(name: str, description: str, package: str, language: str) -> CreatePayload:
    body = "\n".join(
        [
            _XML_HEADER,
            "<intf:abapInterface",
            '    xmlns:intf="http://www.sap.com/adt/oo/interfaces"',
            f'    xmlns:adtcore="{ADTCORE_NS}"',
            _core_attrs(name, description, language, "INTF/OI") + ">",
            _package_ref(package),
            "</intf:abapInterface>",
        ]
    )
    return CreatePayload(paths.collection_path(paths.INTERFACE), body, CREATE_CONTENT_TYPES[paths.INTERFACE])


def program_payload(name: str, description: str, package: str, language: str) -> CreatePayload:
    body = "\n".join(
        [
            _XML_HEADER,
            "<program:abapProgram",
            '    xmlns:program="http://www.sap.com/adt/programs/programs"',
            f'    xmlns:adtcore="{ADTCORE_NS}"',
            _core_attrs(name, description, language, "PROG/P"),
            '    program:programType="1">',
            _package_ref(package),
            "</program:abapProgram>",
        ]
    )
    return CreatePayload(paths.collection_path(paths.PROGRAM), body, CREATE_CONTENT_TYPES[paths.PROGRAM])


def function_group_payload(name: str, description: str, package: str, language: str) -> CreatePayload:
    body = "\n".join(
        [
            _XML_HEADER,
            "<group:abapFunctionGroup",
            '    xmlns:group="http://www.sap.com/adt/functions/groups"',
            f'    xmlns:adtcore="{ADTCORE_NS}"',
            _core_attrs(name, description, language, "FUGR/F") + ">",
            _package_ref(package),
            "</group:abapFunctionGroup>",
        ]
    )
    return CreatePayload(
        paths.collection_path(paths.FUNCTION_GROUP), body, CREATE_CONTENT_TYPES[paths.FUNCTION_GROUP]
    )


def function_module_payload(name: str, description: str, group: str) -> CreatePayload:
    # Function modules inherit package and language from their group.
    group_uri = paths.object_path(paths.FUNCTION_GROUP, group)
    body = "\n".join(
        [
            _XML_HEADER,
            "<fmodule:abapFunctionModule",
            '    xmlns:fmodule="http://www.sap.com/adt/functions/fmodules"',
            f'    xmlns:adtcore="{ADTCORE_NS}"',
            f"    adtcore:description={quoteattr(description)}",
            f"    adtcore:name={quoteattr(name)}",
            '    adtcore:type="FUGR/FF">',
            f"  <adtcore:containerRef adtcore:name={quoteattr(group)}"
            f' adtcore:type="FUGR/F" adtcore:uri={quoteattr(group_uri)}/>',
            "</fmodule:abapFunctionModule>",
        ]
    )
    return CreatePayload(
        paths.collection_path(paths.FUNCTION_MODULE, group=group),
        body,
        CREATE_CONTENT_TYPES[paths.FUNCTION_MODULE],
    )


def activation_payload(uri: str, name: str) -> str:
    return "\n".join(
        [
            _XML_HEADER,
            f'<adtcore:objectReferences xmlns:adtcore="{ADTCORE_NS}">',
            f"  <adtcore:objectReference adtcore:uri={quoteattr(uri)} adtcore:name={quoteattr(name.upper())}/>",
            "</adtcore:objectReferences>",
        ]
    )
