from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
import struct
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

import httpx

from sap_adt_lib.config import AdtSettings

LOGGER = logging.getLogger("sap_adt.bridge")

LOOPBACK_HOSTS = ("localhost", "127.0.0.1")
_NAMESERVER_PATTERN = re.compile(r"^\s*nameserver\s+(\d+\.\d+\.\d+\.\d+)", re.MULTILINE)


class ProbeState(str, Enum):
    UNCHECKED = "unchecked"
    UNAVAILABLE = "unavailable"
    AVAILABLE = "available"


@dataclass(frozen=True)
class BridgeEndpoint:
    base_url: str
    discovered_at: float


def nameserver_host(resolv_conf: Path) -> str | None:
    """First non-loopback nameserver; under WSL2 this is the Windows host."""

    try:
        text = resolv_conf.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None
    for match in _NAMESERVER_PATTERN.finditer(text):
        address = match.group(1)
        try:
            if ipaddress.ip_address(address).is_loopback:
                continue
        except ValueError:
            continue
        return address
    return None


def default_gateway_host(route_table: Path) -> str | None:
    try:
        lines = route_table.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError:
        return None
    for line in lines[1:]:
        fields = line.split()
        if len(fields) < 3 or fields[1] != "00000000":
            continue
        try:
            packed = struct.pack("<L", int(fields[2], 16))
        except (ValueError, struct.error):
            continue
        gateway = socket.inet_ntoa(packed)
        if gateway != "0.0.0.0":
            return gateway
    return None


def candidate_hosts(settings: AdtSettings) -> List[str]:
    hosts: List[str] = list(LOOPBACK_HOSTS)
    for extra in (nameserver_host(settings.resolv_conf_path), default_gateway_host(settings.route_table_path)):
        if extra and extra not in hosts:
            hosts.append(extra)
    return hosts


class EndpointProber:
    """Resolves the bridge base URL once and remembers the verdict.

    The verdict (available or unavailable) is never re-probed; a fresh prober
    is required to look again.
    """

    def __init__(
        self,
        settings: AdtSettings,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._http_transport = http_transport
        self._state = ProbeState.UNCHECKED
        self._endpoint: BridgeEndpoint | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ProbeState:
        return self._state

    @property
    def endpoint(self) -> BridgeEndpoint | None:
        return self._endpoint

    async def resolve(self) -> BridgeEndpoint | None:
        if self._state is not ProbeState.UNCHECKED:
            return self._endpoint
        async with self._lock:
            if self._state is ProbeState.UNCHECKED:
                self._endpoint = await self._discover()
                self._state = ProbeState.AVAILABLE if self._endpoint else ProbeState.UNAVAILABLE
        return self._endpoint

    async def is_available(self) -> bool:
        return await self.resolve() is not None

    async def _discover(self) -> BridgeEndpoint | None:
        timeout = httpx.Timeout(self.settings.health_timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self._http_transport) as client:
            override = self.settings.bridge_url
            if override:
                if await self._healthy(client, override):
                    LOGGER.info("Eclipse ADT bridge detected at %s (from BRIDGE_URL)", override)
                    return BridgeEndpoint(base_url=override, discovered_at=time.time())
                LOGGER.info("BRIDGE_URL %s did not answer; falling back to auto-detection", override)

            for host in candidate_hosts(self.settings):
                url = f"http://{host}:{self.settings.bridge_port}"
                if await self._healthy(client, url):
                    LOGGER.info("Eclipse ADT bridge detected at %s", url)
                    return BridgeEndpoint(base_url=url, discovered_at=time.time())

        LOGGER.warning("Eclipse ADT bridge not available; bridge is required for all SAP operations")
        return None

    async def _healthy(self, client: httpx.AsyncClient, base_url: str) -> bool:
        try:
            response = await client.get(f"{base_url}/health")
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            LOGGER.debug("bridge candidate %s rejected: %s", base_url, exc)
            return False
        status = payload.get("status") if isinstance(payload, dict) else None
        if status != "ok":
            LOGGER.debug("bridge candidate %s reported status=%r", base_url, status)
            return False
        return True
