from __future__ import annotations

from typing import Dict, Iterable, Mapping


class AdtError(RuntimeError):
    """Base class for every failure raised by the ADT bridge client."""

    def to_details(self) -> Dict[str, object]:
        return {"error": type(self).__name__}


class BridgeUnreachable(AdtError):
    """No bridge answered, or the bridge connection itself failed."""


class ApplicationError(AdtError):
    """The remote system answered with a status >= 400."""

    def __init__(
        self,
        status: int,
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.status = status
        self.body = body or ""
        self.headers: Dict[str, str] = dict(headers or {})
        super().__init__(message or f"Bridge request failed: {status} {self.body or 'Unknown error'}")

    def is_already_exists(self, markers: Iterable[str]) -> bool:
        if not 400 <= self.status < 500:
            return False
        return any(marker and marker in self.body for marker in markers)

    def to_details(self) -> Dict[str, object]:
        return {"error": type(self).__name__, "status": self.status, "body": self.body}


class ObjectNotFound(ApplicationError):
    def __init__(self, kind: str, name: str, cause: ApplicationError) -> None:
        self.kind = kind
        self.name = name
        super().__init__(
            cause.status,
            cause.body,
            cause.headers,
            message=f"Object not found: {kind} {name}",
        )


class UnsupportedKind(AdtError, ValueError):
    def __init__(self, kind: str, supported: Iterable[str]) -> None:
        self.kind = kind
        self.supported = tuple(supported)
        super().__init__(f"Unsupported object type: {kind}. Use: {', '.join(self.supported)}")


class NameTooLong(AdtError, ValueError):
    def __init__(self, kind: str, name: str, limit: int) -> None:
        self.kind = kind
        self.name = name
        self.limit = limit
        super().__init__(f"{kind} name '{name}' is {len(name)} characters long; the limit is {limit}")


class PartialMutation(AdtError):
    """The object was created or written but did not reach the activated state."""

    def __init__(self, stage: str, path: str, cause: BaseException, *, source_written: bool = True) -> None:
        self.stage = stage
        self.path = path
        self.cause = cause
        self.source_written = source_written
        done = "Source written to" if source_written else "Created"
        super().__init__(f"{done} {path} but {stage} failed: {cause}")

    def to_details(self) -> Dict[str, object]:
        details: Dict[str, object] = {
            "error": type(self).__name__,
            "stage": self.stage,
            "path": self.path,
            "sourceWritten": self.source_written,
        }
        if isinstance(self.cause, ApplicationError):
            details["status"] = self.cause.status
            details["body"] = self.cause.body
        return details
