#!/usr/bin/env python3
"""MCP server / CLI exposing SAP ADT repository operations through the Eclipse bridge."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from mcp.server import FastMCP

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sap_adt_lib import AdtService, AdtSettings  # noqa: E402


def _configure_logger(settings: AdtSettings) -> logging.Logger:
    """Route sap_adt.* logs to stderr; stdout carries the MCP stdio stream."""

    logger = logging.getLogger("sap_adt")
    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handlers: list[logging.Handler] = []

    file_handler_error: Exception | None = None
    if settings.log_file:
        try:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem issues are diagnostic by nature
            file_handler_error = exc
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    logger.propagate = False

    if file_handler_error:
        logger.warning(
            "Falling back to stderr logging because %s could not be opened: %s",
            settings.log_file,
            file_handler_error,
        )
    return logger


app = FastMCP(
    name="sap-adt",
    instructions="Search, read, create and update ABAP repository objects through the Eclipse ADT bridge.",
)


@lru_cache(maxsize=1)
def _service() -> AdtService:
    settings = AdtSettings.from_env()
    _configure_logger(settings)
    return AdtService(settings)


async def _execute(operation: str, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _service().run(operation, {k: v for k, v in params.items() if v is not None})


@app.tool(
    name="sap_search",
    description="Search ABAP objects (classes, programs, function groups, packages, tables, ...) by name pattern.",
)
async def sap_search(
    query: str,
    max_results: int = 20,
    object_type: str | None = None,
    package_name: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "search",
        {"query": query, "max_results": max_results, "object_type": object_type, "package_name": package_name},
    )


@app.tool(
    name="sap_read_source",
    description="Read the source of a class, interface, program, function group or function module; tables return their definition.",
)
async def sap_read_source(object_type: str, object_name: str, group: str | None = None) -> Dict[str, Any]:
    return await _execute("read_source", {"object_type": object_type, "object_name": object_name, "group": group})


@app.tool(name="sap_get_package", description="Get package metadata and list the objects it contains.")
async def sap_get_package(package_name: str) -> Dict[str, Any]:
    return await _execute("get_package", {"package_name": package_name})


@app.tool(name="sap_get_object_info", description="Get raw ADT metadata for an object URI, e.g. /sap/bc/adt/oo/classes/zcl_demo.")
async def sap_get_object_info(uri: str) -> Dict[str, Any]:
    return await _execute("get_object_info", {"uri": uri})


@app.tool(name="sap_check_connection", description="Check whether the Eclipse ADT bridge and the SAP system are reachable.")
async def sap_check_connection() -> Dict[str, Any]:
    return await _execute("check_connection", {})


@app.tool(
    name="sap_create_class",
    description="Create or update an ABAP class and activate it. Names are prefixed with Z unless they start with Z or Y.",
)
async def sap_create_class(
    name: str,
    description: str | None = None,
    package: str | None = None,
    transport: str | None = None,
    source_code: str | None = None,
    final: bool = True,
    visibility: str = "public",
) -> Dict[str, Any]:
    return await _execute(
        "create_class",
        {
            "name": name,
            "description": description,
            "package": package,
            "transport": transport,
            "source_code": source_code,
            "final": final,
            "visibility": visibility,
        },
    )


@app.tool(name="sap_create_interface", description="Create or update an ABAP interface and activate it.")
async def sap_create_interface(
    name: str,
    description: str | None = None,
    package: str | None = None,
    transport: str | None = None,
    source_code: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "create_interface",
        {"name": name, "description": description, "package": package, "transport": transport, "source_code": source_code},
    )


@app.tool(name="sap_create_program", description="Create or update an ABAP program (report) and activate it.")
async def sap_create_program(
    name: str,
    description: str | None = None,
    package: str | None = None,
    transport: str | None = None,
    source_code: str | None = None,
    language: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "create_program",
        {
            "name": name,
            "description": description,
            "package": package,
            "transport": transport,
            "source_code": source_code,
            "language": language,
        },
    )


@app.tool(
    name="sap_create_function_group",
    description="Create a function group (max 26 characters); an existing group is reused.",
)
async def sap_create_function_group(
    name: str,
    description: str | None = None,
    package: str | None = None,
    transport: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "create_function_group",
        {"name": name, "description": description, "package": package, "transport": transport},
    )


@app.tool(
    name="sap_create_function_module",
    description="Create or update a function module, creating its function group first when missing.",
)
async def sap_create_function_module(
    name: str,
    function_group: str | None = None,
    description: str | None = None,
    package: str | None = None,
    transport: str | None = None,
    source_code: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "create_function_module",
        {
            "name": name,
            "function_group": function_group,
            "description": description,
            "package": package,
            "transport": transport,
            "source_code": source_code,
        },
    )


@app.tool(
    name="sap_write_source",
    description="Replace the source of an existing object (lock, write, unlock, activate).",
)
async def sap_write_source(
    object_type: str,
    name: str,
    source_code: str,
    transport: str | None = None,
    function_group: str | None = None,
) -> Dict[str, Any]:
    return await _execute(
        "write_source",
        {
            "object_type": object_type,
            "name": name,
            "source_code": source_code,
            "transport": transport,
            "function_group": function_group,
        },
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="SAP ADT bridge MCP server / CLI dispatcher")
    parser.add_argument("--cli", action="store_true", help="Run a one-shot operation and exit")
    parser.add_argument("--operation", help="Operation to run (required with --cli)")
    parser.add_argument("--params", help="Inline JSON parameters for the operation")
    parser.add_argument("--params-file", type=Path, help="Path to JSON file with params")
    args = parser.parse_args()
    if args.cli:
        if not args.operation:
            parser.error("--operation is required when using --cli")
        payload: Dict[str, Any] = {}
        if args.params_file:
            payload = json.loads(args.params_file.read_text(encoding="utf-8"))
        elif args.params:
            payload = json.loads(args.params)
        result = asyncio.run(_execute(args.operation, payload))
        print(json.dumps(result, indent=2, ensure_ascii=False))
        sys.exit(0 if result.get("status") == "ok" else 1)
    _service()
    app.run()


if __name__ == "__main__":
    main()
