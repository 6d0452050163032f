from __future__ import annotations

from .config import AdtSettings
from .errors import (
    AdtError,
    ApplicationError,
    BridgeUnreachable,
    NameTooLong,
    ObjectNotFound,
    PartialMutation,
    UnsupportedKind,
)
from .service import AdtResponse, AdtService

__all__ = [
    "AdtError",
    "AdtResponse",
    "AdtService",
    "AdtSettings",
    "ApplicationError",
    "BridgeUnreachable",
    "NameTooLong",
    "ObjectNotFound",
    "PartialMutation",
    "UnsupportedKind",
]
