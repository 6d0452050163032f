from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

import httpx

from sap_adt_lib.config import AdtSettings
from sap_adt_lib.errors import ApplicationError, BridgeUnreachable

from .prober import EndpointProber

LOGGER = logging.getLogger("sap_adt.bridge")

BRIDGE_UNAVAILABLE_MESSAGE = "Eclipse ADT bridge is not available. Start Eclipse with the ADT bridge plugin."


@dataclass
class ProxyCall:
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str | None = None
    params: Dict[str, str] = field(default_factory=dict)

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "method": self.method.upper(),
            "path": self.path,
            "headers": dict(self.headers),
            "body": self.body,
            "params": dict(self.params),
        }


@dataclass
class ProxyResult:
    status: int
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ProxyResult:
        try:
            status = int(payload.get("status", 0))
        except (TypeError, ValueError):
            status = 0
        body = payload.get("body")
        headers = payload.get("headers") or {}
        return cls(
            status=status,
            body=body if isinstance(body, str) else ("" if body is None else str(body)),
            headers={str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else {},
        )


class ProxyTransport:
    """Relays one logical HTTP call through the bridge's /proxy entry point."""

    def __init__(
        self,
        prober: EndpointProber,
        settings: AdtSettings | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.prober = prober
        self.settings = settings or prober.settings
        self._http_transport = http_transport

    async def ensure_available(self) -> str:
        endpoint = await self.prober.resolve()
        if endpoint is None:
            raise BridgeUnreachable(BRIDGE_UNAVAILABLE_MESSAGE)
        return endpoint.base_url

    async def send(self, call: ProxyCall) -> ProxyResult:
        base_url = await self.ensure_available()
        LOGGER.debug("proxy %s %s params=%s", call.method, call.path, call.params)
        timeout = httpx.Timeout(self.settings.proxy_timeout)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._http_transport) as client:
                response = await client.post(f"{base_url}/proxy", json=call.to_envelope())
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise BridgeUnreachable(
                f"Bridge at {base_url} rejected the proxy call with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BridgeUnreachable(f"Bridge request to {base_url} failed: {exc}") from exc
        except ValueError as exc:
            raise BridgeUnreachable(f"Bridge at {base_url} returned a non-JSON reply") from exc
        if not isinstance(payload, dict):
            raise BridgeUnreachable(f"Bridge at {base_url} returned an unexpected payload shape")

        result = ProxyResult.from_payload(payload)
        if result.status >= 400:
            detail = result.body or payload.get("error") or "Unknown error"
            LOGGER.debug("proxy %s %s -> %s", call.method, call.path, result.status)
            raise ApplicationError(
                result.status,
                result.body,
                result.headers,
                message=f"Bridge request failed: {result.status} {detail}",
            )
        return result

    async def get(
        self,
        path: str,
        accept: str = "*/*",
        params: Mapping[str, str] | None = None,
    ) -> str:
        result = await self.send(
            ProxyCall("GET", path, headers={"Accept": accept}, params=dict(params or {}))
        )
        return result.body

    async def post(
        self,
        path: str,
        body: str | None,
        content_type: str,
        accept: str = "*/*",
        params: Mapping[str, str] | None = None,
    ) -> ProxyResult:
        return await self.send(
            ProxyCall(
                "POST",
                path,
                headers={"Content-Type": content_type, "Accept": accept},
                body=body,
                params=dict(params or {}),
            )
        )

    async def put(
        self,
        path: str,
        body: str | None,
        content_type: str,
        accept: str = "*/*",
        params: Mapping[str, str] | None = None,
    ) -> ProxyResult:
        return await self.send(
            ProxyCall(
                "PUT",
                path,
                headers={"Content-Type": content_type, "Accept": accept},
                body=body,
                params=dict(params or {}),
            )
        )
