from __future__ import annotations

from typing import Any, Dict, List

from sap_adt_lib.bridge.transport import ProxyTransport
from sap_adt_lib.config import AdtSettings
from sap_adt_lib.errors import AdtError, ApplicationError, ObjectNotFound

from . import paths
from .parsing import core_attributes, element_to_dict, parse_object_references, parse_xml

PACKAGE_LISTING_LIMIT = 100


class RepositoryReader:
    def __init__(self, transport: ProxyTransport, settings: AdtSettings) -> None:
        self.transport = transport
        self.settings = settings

    async def search(
        self,
        query: str,
        max_results: int = 20,
        object_type: str = "",
        package_name: str = "",
    ) -> Dict[str, Any]:
        if not query or not query.strip():
            raise ValueError("search requires a non-empty query")
        params = {"operation": "quickSearch", "query": query, "maxResults": str(max(1, int(max_results)))}
        if object_type:
            params["objectType"] = object_type
        if package_name:
            params["packageName"] = package_name.upper()
        xml = await self.transport.get(paths.SEARCH_PATH, "application/xml", params)
        results = [ref.to_dict() for ref in parse_object_references(xml, source=f"search '{query}'")]
        return {"results": results, "count": len(results), "query": query}

    async def read_source(self, kind: str, name: str, *, group: str | None = None) -> str:
        resolved = paths.canonical_kind(kind)
        if resolved == paths.TABLE:
            return await self.table_definition(name)
        path = paths.object_path(resolved, name, group=group)
        try:
            return await self.transport.get(paths.source_path(path), "text/plain")
        except ApplicationError as exc:
            if exc.status == 404:
                raise ObjectNotFound(kind, name, exc) from exc
            raise

    async def table_definition(self, name: str) -> str:
        path = paths.object_path(paths.TABLE, name)
        try:
            return await self.transport.get(path, "*/*")
        except ApplicationError as exc:
            if exc.status == 404:
                raise ObjectNotFound(paths.TABLE, name, exc) from exc
            raise

    async def get_package(self, package_name: str) -> Dict[str, Any]:
        name = package_name.strip().upper()
        if not name:
            raise ValueError("get_package requires a package name")
        metadata_xml = await self.transport.get(paths.package_path(name), "*/*")
        metadata = core_attributes(metadata_xml, source=f"package {name}")
        listing_xml = await self.transport.get(
            paths.SEARCH_PATH,
            "application/xml",
            {
                "operation": "quickSearch",
                "query": "*",
                "maxResults": str(PACKAGE_LISTING_LIMIT),
                "packageName": name,
            },
        )
        objects: List[Dict[str, Any]] = []
        for ref in parse_object_references(listing_xml, source=f"package {name} listing"):
            entry = ref.to_dict()
            entry.pop("packageName", None)
            objects.append(entry)
        return {
            "name": metadata.get("name") or name,
            "description": metadata.get("description", ""),
            "createdBy": metadata.get("createdBy", ""),
            "createdAt": metadata.get("createdAt", ""),
            "changedBy": metadata.get("changedBy", ""),
            "changedAt": metadata.get("changedAt", ""),
            "objects": objects,
            "objectCount": len(objects),
        }

    async def get_object_info(self, uri: str) -> Dict[str, Any]:
        uri = (uri or "").strip()
        if not uri:
            raise ValueError("get_object_info requires a uri")
        if not uri.startswith("/"):
            uri = "/" + uri
        xml = await self.transport.get(uri, "*/*")
        return element_to_dict(parse_xml(xml, source=uri))

    async def check_connection(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {"mode": "eclipse-bridge", "url": self.settings.system_url}
        try:
            if not await self.transport.prober.is_available():
                status.update(
                    status="error",
                    message="Eclipse ADT bridge not available. Start Eclipse with the ADT bridge plugin.",
                )
                return status
            endpoint = self.transport.prober.endpoint
            status["bridge"] = endpoint.base_url if endpoint else None
            data = await self.transport.get(paths.DISCOVERY_PATH, "application/atomsvc+xml")
        except AdtError as exc:
            status.update(status="error", message=str(exc))
            return status
        status.update(
            status="connected",
            message="Connected via Eclipse ADT bridge (full read/write access)",
            discoverySize=len(data),
        )
        return status
