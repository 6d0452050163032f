from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict

from sap_adt_lib.bridge.transport import ProxyTransport
from sap_adt_lib.errors import AdtError, PartialMutation

from . import paths
from .parsing import activation_errors, extract_lock_handle
from .payloads import LOCK_ACCEPT, activation_payload

LOGGER = logging.getLogger("sap_adt.mutation")


@dataclass
class MutationOutcome:
    path: str
    name: str
    lock_handle_obtained: bool
    activated: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "lockHandleObtained": self.lock_handle_obtained,
            "activated": self.activated,
        }


class ActivationFailed(AdtError):
    def __init__(self, name: str, messages: list[str]) -> None:
        self.messages = messages
        super().__init__(f"Activation of {name} reported errors: {'; '.join(messages)}")


class ObjectMutator:
    """Lock, write, unlock, activate: in that order, for one object.

    Once a lock is held it is released exactly once, whatever happens to the
    write. Activation only runs after the release succeeded.
    """

    def __init__(self, transport: ProxyTransport) -> None:
        self.transport = transport

    async def lock(self, path: str, transport_id: str | None = None) -> str:
        params = {"_action": "LOCK", "accessMode": "MODIFY"}
        if transport_id:
            params["corrNr"] = transport_id
        result = await self.transport.post(path, "", "application/xml", LOCK_ACCEPT, params)
        handle = extract_lock_handle(result.body)
        if not handle:
            LOGGER.info("lock on %s returned no lock handle; continuing without one", path)
        return handle

    async def unlock(self, path: str, lock_handle: str) -> None:
        params = {"_action": "UNLOCK"}
        if lock_handle:
            params["lockHandle"] = lock_handle
        await self.transport.post(path, "", "application/xml", "*/*", params)

    @asynccontextmanager
    async def locked(self, path: str, transport_id: str | None = None) -> AsyncIterator[str]:
        lock_handle = await self.lock(path, transport_id)
        try:
            yield lock_handle
        except BaseException:
            try:
                await self.unlock(path, lock_handle)
            except Exception as unlock_exc:
                LOGGER.warning("unlock of %s failed after an earlier error: %s", path, unlock_exc)
            raise
        try:
            await self.unlock(path, lock_handle)
        except AdtError as exc:
            raise PartialMutation("unlock", path, exc) from exc

    async def write_source(self, path: str, source_text: str, lock_handle: str) -> None:
        params = {"lockHandle": lock_handle} if lock_handle else {}
        await self.transport.put(paths.source_path(path), source_text, "text/plain", "text/plain", params)

    async def activate(self, path: str, name: str) -> None:
        result = await self.transport.post(
            paths.ACTIVATION_PATH,
            activation_payload(path, name),
            "application/xml",
            "application/xml",
            {"method": "activate", "preauditRequested": "true"},
        )
        messages = activation_errors(result.body)
        if messages:
            raise ActivationFailed(name.upper(), messages)

    async def mutate_object_source(
        self,
        path: str,
        source_text: str,
        transport_id: str | None = None,
        *,
        name: str | None = None,
    ) -> MutationOutcome:
        object_name = (name or path.rstrip("/").rsplit("/", 1)[-1]).upper()
        LOGGER.info("writing source of %s (%d chars)", object_name, len(source_text))
        async with self.locked(path, transport_id) as lock_handle:
            await self.write_source(path, source_text, lock_handle)

        try:
            await self.activate(path, object_name)
        except AdtError as exc:
            raise PartialMutation("activate", path, exc) from exc
        LOGGER.info("activated %s", object_name)
        return MutationOutcome(
            path=path,
            name=object_name,
            lock_handle_obtained=bool(lock_handle),
            activated=True,
        )
