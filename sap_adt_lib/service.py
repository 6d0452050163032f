from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

import httpx

from sap_adt_lib.bridge import EndpointProber, ProxyTransport
from sap_adt_lib.config import AdtSettings
from sap_adt_lib.errors import AdtError, PartialMutation
from sap_adt_lib.repository import ObjectDescriptor, ObjectReconciler, RepositoryReader
from sap_adt_lib.repository import paths

LOGGER = logging.getLogger("sap_adt.service")

Handler = Callable[[Dict[str, Any]], Awaitable["AdtResponse"]]


@dataclass
class AdtResponse:
    status: str
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "details": self.details,
            "warnings": self.warnings,
            "errors": self.errors,
        }


def _required(params: Dict[str, Any], key: str, operation: str) -> str:
    value = params.get(key)
    if value is None or not str(value).strip():
        raise ValueError(f"{operation} requires '{key}'")
    return str(value).strip()


class AdtService:
    """Operation dispatcher over one bridge session.

    The prober lives as long as the service, so the bridge is located once
    and the verdict is shared by every operation dispatched here.
    """

    def __init__(
        self,
        settings: AdtSettings | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or AdtSettings.from_env()
        self.prober = EndpointProber(self.settings, http_transport=http_transport)
        self.transport = ProxyTransport(self.prober, self.settings, http_transport=http_transport)
        self.reader = RepositoryReader(self.transport, self.settings)
        self.reconciler = ObjectReconciler(self.transport, self.settings)

    def _handlers(self) -> Dict[str, Handler]:
        return {
            "search": self._search,
            "read_source": self._read_source,
            "get_package": self._get_package,
            "get_object_info": self._get_object_info,
            "check_connection": self._check_connection,
            "create_class": self._creator(paths.CLASS),
            "create_interface": self._creator(paths.INTERFACE),
            "create_program": self._creator(paths.PROGRAM),
            "create_function_group": self._creator(paths.FUNCTION_GROUP),
            "create_function_module": self._creator(paths.FUNCTION_MODULE),
            "write_source": self._write_source,
        }

    @property
    def operations(self) -> List[str]:
        return sorted(self._handlers())

    async def dispatch(self, operation: str, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        params = params or {}
        op = operation.strip().lower()
        handler = self._handlers().get(op)
        if not handler:
            raise ValueError(f"Unsupported operation '{operation}'")
        response = await handler(params)
        return response.to_dict()

    async def run(self, operation: str, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        try:
            return await self.dispatch(operation, params or {})
        except PartialMutation as exc:
            LOGGER.warning("%s left %s inactive: %s", operation, exc.path, exc)
            return AdtResponse(
                status="partial",
                details={"operation": operation, **exc.to_details()},
                errors=[str(exc)],
            ).to_dict()
        except (AdtError, ValueError) as exc:
            LOGGER.error("%s failed: %s", operation, exc)
            details: Dict[str, Any] = {"operation": operation}
            if isinstance(exc, AdtError):
                details.update(exc.to_details())
            return AdtResponse(status="error", details=details, errors=[str(exc)]).to_dict()

    # operations -----------------------------------------------------------------
    async def _search(self, params: Dict[str, Any]) -> AdtResponse:
        query = _required(params, "query", "search")
        result = await self.reader.search(
            query,
            max_results=int(params.get("max_results") or params.get("maxResults") or 20),
            object_type=str(params.get("object_type") or params.get("objectType") or ""),
            package_name=str(params.get("package_name") or params.get("packageName") or ""),
        )
        warnings = [] if result["count"] else [f"No objects matched '{query}'"]
        return AdtResponse(status="ok", details=result, warnings=warnings)

    async def _read_source(self, params: Dict[str, Any]) -> AdtResponse:
        kind = str(params.get("object_type") or params.get("objectType") or "").strip()
        if not kind:
            raise ValueError("read_source requires 'object_type'")
        name = str(params.get("object_name") or params.get("objectName") or "").strip()
        if not name:
            raise ValueError("read_source requires 'object_name'")
        group = params.get("group") or params.get("function_group")
        source = await self.reader.read_source(kind, name, group=str(group) if group else None)
        return AdtResponse(status="ok", details={"objectType": kind, "objectName": name, "source": source})

    async def _get_package(self, params: Dict[str, Any]) -> AdtResponse:
        name = params.get("package_name") or params.get("packageName")
        if not name or not str(name).strip():
            raise ValueError("get_package requires 'package_name'")
        return AdtResponse(status="ok", details=await self.reader.get_package(str(name)))

    async def _get_object_info(self, params: Dict[str, Any]) -> AdtResponse:
        uri = _required(params, "uri", "get_object_info")
        return AdtResponse(status="ok", details=await self.reader.get_object_info(uri))

    async def _check_connection(self, params: Dict[str, Any]) -> AdtResponse:
        details = await self.reader.check_connection()
        status = "ok" if details.get("status") == "connected" else "error"
        errors = [details["message"]] if status == "error" else []
        return AdtResponse(status=status, details=details, errors=errors)

    def _creator(self, kind: str) -> Handler:
        async def _create(params: Dict[str, Any]) -> AdtResponse:
            descriptor = ObjectDescriptor.from_params(kind, params)
            return AdtResponse(status="ok", details=await self.reconciler.create_or_update(descriptor))

        return _create

    async def _write_source(self, params: Dict[str, Any]) -> AdtResponse:
        kind = str(params.get("object_type") or params.get("objectType") or "").strip()
        if not kind:
            raise ValueError("write_source requires 'object_type'")
        name = _required(params, "name", "write_source")
        source = params.get("source_code", params.get("sourceCode"))
        if not isinstance(source, str) or not source:
            raise ValueError("write_source requires 'source_code'")
        group = params.get("function_group") or params.get("group")
        details = await self.reconciler.write_source(
            kind,
            name,
            source,
            transport=str(params["transport"]) if params.get("transport") else None,
            group=str(group) if group else None,
        )
        return AdtResponse(status="ok", details=details)
