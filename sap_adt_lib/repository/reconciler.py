from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping

from sap_adt_lib.bridge.transport import ProxyTransport
from sap_adt_lib.config import AdtSettings, is_truthy
from sap_adt_lib.errors import AdtError, ApplicationError, PartialMutation

from . import paths
from .mutation import ObjectMutator
from .naming import derive_function_group, function_group_name, normalize_name
from .payloads import (
    CreatePayload,
    class_payload,
    function_group_payload,
    function_module_payload,
    interface_payload,
    program_payload,
)

LOGGER = logging.getLogger("sap_adt.reconciler")

DEFAULT_DESCRIPTION = "Created via ADT bridge"
MUTABLE_KINDS = (
    paths.CLASS,
    paths.INTERFACE,
    paths.PROGRAM,
    paths.FUNCTION_GROUP,
    paths.FUNCTION_MODULE,
)
VISIBILITIES = ("public", "protected", "private")

CREATED = "created"
UPDATED = "updated"
ALREADY_EXISTED = "already_existed"


def _text(params: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = params.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


@dataclass(frozen=True)
class ObjectDescriptor:
    kind: str
    name: str
    package: str | None = None
    transport: str | None = None
    language: str | None = None
    description: str | None = None
    source_code: str | None = None
    function_group: str | None = None
    final: bool = True
    visibility: str = "public"

    @classmethod
    def from_params(cls, kind: str, params: Mapping[str, Any]) -> ObjectDescriptor:
        name = _text(params, "name")
        if not name:
            raise ValueError(f"create_{kind} requires 'name'")
        source = params.get("source_code", params.get("sourceCode"))
        final = params.get("final", params.get("isFinal", True))
        if isinstance(final, str):
            final = is_truthy(final)
        return cls(
            kind=kind,
            name=name,
            package=_text(params, "package"),
            transport=_text(params, "transport"),
            language=_text(params, "language"),
            description=_text(params, "description"),
            source_code=source if isinstance(source, str) and source else None,
            function_group=_text(params, "function_group", "functionGroup", "group"),
            final=bool(final),
            visibility=(_text(params, "visibility") or "public").lower(),
        )


class ObjectReconciler:
    """Create-or-update for repository objects without an existence probe.

    Reading an object first would enqueue a lock on the bridge session, so
    creation is attempted optimistically and an "already exists" answer
    switches to the update path.
    """

    def __init__(
        self,
        transport: ProxyTransport,
        settings: AdtSettings,
        mutator: ObjectMutator | None = None,
    ) -> None:
        self.transport = transport
        self.settings = settings
        self.mutator = mutator or ObjectMutator(transport)

    def normalize(self, descriptor: ObjectDescriptor) -> ObjectDescriptor:
        kind = paths.canonical_kind(descriptor.kind, MUTABLE_KINDS)
        if kind == paths.FUNCTION_GROUP:
            name = function_group_name(descriptor.name)
        else:
            name = normalize_name(descriptor.name)
        group = None
        if kind == paths.FUNCTION_MODULE:
            if descriptor.function_group:
                group = function_group_name(descriptor.function_group)
            else:
                group = derive_function_group(name)
        if descriptor.visibility not in VISIBILITIES:
            raise ValueError(f"visibility must be one of {', '.join(VISIBILITIES)}, got '{descriptor.visibility}'")
        return replace(
            descriptor,
            kind=kind,
            name=name,
            package=(descriptor.package or self.settings.default_package).upper(),
            language=(descriptor.language or self.settings.default_language).upper(),
            description=descriptor.description or DEFAULT_DESCRIPTION,
            function_group=group,
        )

    async def create_or_update(self, descriptor: ObjectDescriptor) -> Dict[str, Any]:
        target = self.normalize(descriptor)
        result: Dict[str, Any] = {}

        if target.kind == paths.FUNCTION_MODULE:
            if not target.function_group:
                raise ValueError(f"function module {target.name} has no function group")
            group_action = await self.ensure_function_group(
                target.function_group,
                package=target.package or self.settings.default_package,
                transport=target.transport,
                language=target.language or self.settings.default_language,
                description=target.description or DEFAULT_DESCRIPTION,
            )
            result["functionGroup"] = target.function_group
            result["functionGroupAction"] = group_action

        existing_action = ALREADY_EXISTED if target.kind == paths.FUNCTION_GROUP else UPDATED
        action = await self._create(self._payload(target), target, existing_action=existing_action)
        path = paths.object_path(target.kind, target.name, group=target.function_group)

        activated = False
        if target.source_code:
            await self.mutator.mutate_object_source(path, target.source_code, target.transport, name=target.name)
            activated = True
        elif action == CREATED:
            try:
                await self.mutator.activate(path, target.name)
            except AdtError as exc:
                raise PartialMutation("activate", path, exc, source_written=False) from exc
            activated = True

        result.update(
            {
                "success": True,
                "action": action,
                "kind": target.kind,
                "name": target.name,
                "uri": path,
                "package": target.package,
                "transport": target.transport,
                "description": target.description,
                "sourceCodeWritten": bool(target.source_code),
                "activated": activated,
            }
        )
        return result

    async def ensure_function_group(
        self,
        name: str,
        *,
        package: str,
        transport: str | None,
        language: str,
        description: str,
    ) -> str:
        group = ObjectDescriptor(
            kind=paths.FUNCTION_GROUP,
            name=function_group_name(name),
            package=package,
            transport=transport,
            language=language,
            description=description,
        )
        action = await self._create(self._payload(group), group, existing_action=ALREADY_EXISTED)
        if action == CREATED:
            path = paths.object_path(paths.FUNCTION_GROUP, group.name)
            try:
                await self.mutator.activate(path, group.name)
            except AdtError as exc:
                raise PartialMutation("activate", path, exc, source_written=False) from exc
        return action

    async def write_source(
        self,
        kind: str,
        name: str,
        source_code: str,
        *,
        transport: str | None = None,
        group: str | None = None,
    ) -> Dict[str, Any]:
        resolved = paths.canonical_kind(kind, MUTABLE_KINDS)
        if not source_code:
            raise ValueError("write_source requires non-empty source code")
        if resolved == paths.FUNCTION_GROUP:
            object_name = function_group_name(name)
        else:
            object_name = normalize_name(name)
        container = None
        if resolved == paths.FUNCTION_MODULE:
            container = function_group_name(group) if group else derive_function_group(object_name)
        path = paths.object_path(resolved, object_name, group=container)
        outcome = await self.mutator.mutate_object_source(path, source_code, transport, name=object_name)
        return {"success": True, "action": UPDATED, "kind": resolved, "transport": transport, **outcome.to_dict()}

    async def _create(self, payload: CreatePayload, target: ObjectDescriptor, *, existing_action: str) -> str:
        params = {"corrNr": target.transport} if target.transport else {}
        try:
            await self.transport.post(
                payload.collection,
                payload.body,
                payload.content_type,
                payload.content_type,
                params,
            )
        except ApplicationError as exc:
            if exc.is_already_exists(self.settings.already_exists_markers):
                LOGGER.info("%s %s already exists; switching to %s", target.kind, target.name, existing_action)
                return existing_action
            raise
        LOGGER.info("created %s %s in package %s", target.kind, target.name, target.package)
        return CREATED

    def _payload(self, target: ObjectDescriptor) -> CreatePayload:
        package = target.package or self.settings.default_package
        language = target.language or self.settings.default_language
        description = target.description or DEFAULT_DESCRIPTION
        if target.kind == paths.CLASS:
            return class_payload(
                target.name,
                description,
                package,
                language,
                final=target.final,
                visibility=target.visibility,
            )
        if target.kind == paths.INTERFACE:
            return interface_payload(target.name, description, package, language)
        if target.kind == paths.PROGRAM:
            return program_payload(target.name, description, package, language)
        if target.kind == paths.FUNCTION_GROUP:
            return function_group_payload(target.name, description, package, language)
        if not target.function_group:
            raise ValueError(f"function module {target.name} has no function group")
        return function_module_payload(target.name, description, target.function_group)
