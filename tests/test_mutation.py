from pathlib import Path

import pytest

from sap_adt_lib.bridge import EndpointProber, ProxyTransport
from sap_adt_lib.errors import ApplicationError, BridgeUnreachable, PartialMutation
from sap_adt_lib.repository.mutation import ObjectMutator
from tests._bridge_fakes import LOCK_RESULT, FakeBridge, make_settings, reply

CLASS_PATH = "/sap/bc/adt/oo/classes/zcl_demo"
SOURCE = "CLASS zcl_demo DEFINITION PUBLIC.\nENDCLASS.\nCLASS zcl_demo IMPLEMENTATION.\nENDCLASS.\n"


def _mutator(tmp_path: Path, bridge: FakeBridge) -> ObjectMutator:
    http = bridge.transport()
    settings = make_settings(tmp_path)
    return ObjectMutator(ProxyTransport(EndpointProber(settings, http_transport=http), settings, http_transport=http))


def _lockable(bridge: FakeBridge, handle: str = "LH-42") -> FakeBridge:
    return bridge.on("POST", CLASS_PATH, action="LOCK", response=reply(200, LOCK_RESULT.format(handle=handle)))


def _unlocks(bridge: FakeBridge) -> list:
    return [call for call in bridge.calls if (call.get("params") or {}).get("_action") == "UNLOCK"]


@pytest.mark.anyio
async def test_sequence_is_lock_write_unlock_activate(tmp_path: Path):
    bridge = _lockable(FakeBridge())
    mutator = _mutator(tmp_path, bridge)

    outcome = await mutator.mutate_object_source(CLASS_PATH, SOURCE, "K900123")

    assert bridge.sequence() == [
        f"POST {CLASS_PATH} LOCK",
        f"PUT {CLASS_PATH}/source/main",
        f"POST {CLASS_PATH} UNLOCK",
        "POST /sap/bc/adt/activation",
    ]
    lock, write, unlock, activate = bridge.calls
    assert lock["params"] == {"_action": "LOCK", "accessMode": "MODIFY", "corrNr": "K900123"}
    assert write["params"] == {"lockHandle": "LH-42"}
    assert write["body"] == SOURCE
    assert unlock["params"] == {"_action": "UNLOCK", "lockHandle": "LH-42"}
    assert activate["params"] == {"method": "activate", "preauditRequested": "true"}
    assert 'adtcore:name="ZCL_DEMO"' in activate["body"]
    assert outcome.activated is True
    assert outcome.lock_handle_obtained is True


@pytest.mark.anyio
async def test_missing_lock_handle_is_not_fatal(tmp_path: Path):
    bridge = FakeBridge().on("POST", CLASS_PATH, action="LOCK", response=reply(200, "<DATA/>"))
    mutator = _mutator(tmp_path, bridge)

    outcome = await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    write = bridge.calls[1]
    unlock = bridge.calls[2]
    assert write["params"] == {}
    assert unlock["params"] == {"_action": "UNLOCK"}
    assert "corrNr" not in bridge.calls[0]["params"]
    assert outcome.lock_handle_obtained is False


@pytest.mark.anyio
async def test_write_failure_still_unlocks_once_and_skips_activation(tmp_path: Path):
    bridge = _lockable(FakeBridge()).on("PUT", response=reply(423, "locked by another user"))
    mutator = _mutator(tmp_path, bridge)

    with pytest.raises(ApplicationError) as excinfo:
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert excinfo.value.status == 423
    assert len(_unlocks(bridge)) == 1
    assert "POST /sap/bc/adt/activation" not in bridge.sequence()


@pytest.mark.anyio
async def test_unlock_failure_does_not_mask_write_failure(tmp_path: Path, caplog):
    bridge = (
        _lockable(FakeBridge())
        .on("PUT", response=reply(500, "write exploded"))
        .on("POST", CLASS_PATH, action="UNLOCK", response=reply(500, "unlock exploded"))
    )
    mutator = _mutator(tmp_path, bridge)

    with caplog.at_level("WARNING", logger="sap_adt.mutation"):
        with pytest.raises(ApplicationError, match="write exploded"):
            await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert len(_unlocks(bridge)) == 1
    assert any("unlock" in record.message for record in caplog.records)


@pytest.mark.anyio
async def test_lock_failure_aborts_before_write(tmp_path: Path):
    bridge = FakeBridge().on("POST", CLASS_PATH, action="LOCK", response=reply(403, "no authorization"))
    mutator = _mutator(tmp_path, bridge)

    with pytest.raises(ApplicationError):
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert bridge.sequence() == [f"POST {CLASS_PATH} LOCK"]


@pytest.mark.anyio
async def test_activation_failure_is_partial(tmp_path: Path):
    bridge = _lockable(FakeBridge()).on("POST", "/sap/bc/adt/activation", response=reply(500, "activation broke"))
    mutator = _mutator(tmp_path, bridge)

    with pytest.raises(PartialMutation) as excinfo:
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert excinfo.value.stage == "activate"
    assert isinstance(excinfo.value.cause, ApplicationError)
    assert excinfo.value.source_written is True
    assert str(excinfo.value).startswith(f"Source written to {CLASS_PATH}")
    assert excinfo.value.to_details()["status"] == 500
    assert bridge.sequence().index(f"POST {CLASS_PATH} UNLOCK") < bridge.sequence().index(
        "POST /sap/bc/adt/activation"
    )


@pytest.mark.anyio
async def test_activation_check_errors_are_partial(tmp_path: Path):
    messages = (
        '<chkl:messages xmlns:chkl="http://www.sap.com/abapxml/checklist">'
        '<msg type="E"><shortText><txt>Statement is not accessible</txt></shortText></msg>'
        "</chkl:messages>"
    )
    bridge = _lockable(FakeBridge()).on("POST", "/sap/bc/adt/activation", response=reply(200, messages))
    mutator = _mutator(tmp_path, bridge)

    with pytest.raises(PartialMutation, match="Statement is not accessible"):
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)


@pytest.mark.anyio
async def test_unlock_failure_after_write_blocks_activation(tmp_path: Path):
    bridge = _lockable(FakeBridge()).on("POST", CLASS_PATH, action="UNLOCK", response=reply(500, "enqueue error"))
    mutator = _mutator(tmp_path, bridge)

    with pytest.raises(PartialMutation) as excinfo:
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert excinfo.value.stage == "unlock"
    assert len(_unlocks(bridge)) == 1
    assert "POST /sap/bc/adt/activation" not in bridge.sequence()


@pytest.mark.anyio
async def test_transport_failure_during_write_still_unlocks(tmp_path: Path, monkeypatch):
    bridge = _lockable(FakeBridge())
    mutator = _mutator(tmp_path, bridge)

    async def failing_put(*args, **kwargs):
        raise BridgeUnreachable("bridge went away")

    monkeypatch.setattr(mutator.transport, "put", failing_put)

    with pytest.raises(BridgeUnreachable):
        await mutator.mutate_object_source(CLASS_PATH, SOURCE)

    assert len(_unlocks(bridge)) == 1
