from pathlib import Path

import pytest

from sap_adt_lib.service import AdtService
from tests._bridge_fakes import FakeBridge, FakeRepository, make_settings, reply


def _service(tmp_path: Path, bridge: FakeBridge) -> AdtService:
    return AdtService(make_settings(tmp_path), http_transport=bridge.transport())


def test_operations_are_listed(tmp_path: Path):
    service = _service(tmp_path, FakeBridge())
    assert service.operations == [
        "check_connection",
        "create_class",
        "create_function_group",
        "create_function_module",
        "create_interface",
        "create_program",
        "get_object_info",
        "get_package",
        "read_source",
        "search",
        "write_source",
    ]


@pytest.mark.anyio
async def test_unknown_operation_is_an_error(tmp_path: Path):
    service = _service(tmp_path, FakeBridge())

    result = await service.run("drop_table", {})

    assert result["status"] == "error"
    assert result["errors"] == ["Unsupported operation 'drop_table'"]
    with pytest.raises(ValueError):
        await service.dispatch("drop_table")


@pytest.mark.anyio
async def test_create_class_reports_action(tmp_path: Path):
    bridge = FakeRepository().install(FakeBridge())
    service = _service(tmp_path, bridge)

    first = await service.run("create_class", {"name": "cl_orders", "sourceCode": "CLASS zcl_orders DEFINITION."})
    second = await service.run("create_class", {"name": "cl_orders", "sourceCode": "CLASS zcl_orders DEFINITION."})

    assert first["status"] == "ok"
    assert first["details"]["action"] == "created"
    assert first["details"]["name"] == "ZCL_ORDERS"
    assert second["details"]["action"] == "updated"


@pytest.mark.anyio
async def test_missing_name_is_an_error(tmp_path: Path):
    bridge = FakeBridge()
    service = _service(tmp_path, bridge)

    result = await service.run("create_program", {"description": "no name"})

    assert result["status"] == "error"
    assert "requires 'name'" in result["errors"][0]
    assert bridge.health_checks == []


@pytest.mark.anyio
async def test_name_too_long_is_reported_with_details(tmp_path: Path):
    bridge = FakeBridge()
    service = _service(tmp_path, bridge)

    result = await service.run("create_function_group", {"name": "Z" + "G" * 29})

    assert result["status"] == "error"
    assert result["details"] == {"operation": "create_function_group", "error": "NameTooLong"}
    assert "the limit is 26" in result["errors"][0]
    assert bridge.calls == []


@pytest.mark.anyio
async def test_partial_mutation_has_its_own_status(tmp_path: Path):
    broken_activation = FakeBridge().on("POST", "/sap/bc/adt/activation", response=reply(500, "syntax"))
    bridge = FakeRepository().install(broken_activation)
    service = _service(tmp_path, bridge)

    result = await service.run("create_program", {"name": "zrep", "source_code": "REPORT zrep."})

    assert result["status"] == "partial"
    assert result["details"]["stage"] == "activate"
    assert result["details"]["status"] == 500
    assert result["details"]["path"] == "/sap/bc/adt/programs/programs/zrep"


@pytest.mark.anyio
async def test_unreachable_bridge_message(tmp_path: Path):
    service = _service(tmp_path, FakeBridge(healthy_hosts=set()))

    result = await service.run("search", {"query": "Z*"})

    assert result["status"] == "error"
    assert result["errors"] == ["Eclipse ADT bridge is not available. Start Eclipse with the ADT bridge plugin."]
    assert result["details"]["error"] == "BridgeUnreachable"


@pytest.mark.anyio
async def test_search_without_hits_warns(tmp_path: Path):
    service = _service(tmp_path, FakeBridge())

    result = await service.run("search", {"query": "ZNONE*"})

    assert result["status"] == "ok"
    assert result["warnings"] == ["No objects matched 'ZNONE*'"]


@pytest.mark.anyio
async def test_read_source_not_found(tmp_path: Path):
    service = _service(tmp_path, FakeBridge().on("GET", response=reply(404, "")))

    result = await service.run("read_source", {"object_type": "class", "object_name": "ZCL_MISSING"})

    assert result["status"] == "error"
    assert result["errors"] == ["Object not found: class ZCL_MISSING"]
    assert result["details"]["status"] == 404


@pytest.mark.anyio
async def test_write_source_dispatch(tmp_path: Path):
    repo = FakeRepository()
    service = _service(tmp_path, repo.install(FakeBridge()))

    result = await service.run(
        "write_source",
        {"object_type": "interface", "name": "zif_demo", "source_code": "INTERFACE zif_demo PUBLIC.\nENDINTERFACE."},
    )

    assert result["status"] == "ok"
    assert result["details"]["lockHandleObtained"] is True
    assert repo.sources == {"/sap/bc/adt/oo/interfaces/zif_demo/source/main": "INTERFACE zif_demo PUBLIC.\nENDINTERFACE."}


@pytest.mark.anyio
async def test_check_connection_maps_to_status(tmp_path: Path):
    service = _service(tmp_path, FakeBridge(healthy_hosts=set()))

    result = await service.run("check_connection")

    assert result["status"] == "error"
    assert result["details"]["mode"] == "eclipse-bridge"
    assert result["errors"]
