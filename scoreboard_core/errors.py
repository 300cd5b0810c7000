"""Error taxonomy shared by every public operation.

Each error carries:
- kind: stable discriminator ('not_found', 'forbidden', ...)
- message: string key understood by clients (e.g. 'contestNotFound')
- status_code: HTTP-like hint for the transport layer (the core never speaks HTTP)
- context: structured extras (e.g. start_time for countdown UIs)
"""
from __future__ import annotations

from typing import Any


class ContestError(Exception):
    kind = "error"
    status_code = 500
    default_message = "error"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context: dict[str, Any] = dict(context)
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": "error",
            "kind": self.kind,
            "error": self.message,
            "status_code": self.status_code,
        }
        payload.update(self.context)
        return payload


class NotFound(ContestError):
    kind = "not_found"
    status_code = 404
    default_message = "contestNotFound"


class Forbidden(ContestError):
    kind = "forbidden"
    status_code = 403
    default_message = "userNotAllowed"


class PreconditionFailed(ContestError):
    kind = "precondition_failed"
    status_code = 412
    default_message = "preconditionFailed"


class InvalidInput(ContestError):
    kind = "invalid_input"
    status_code = 400
    default_message = "parameterInvalid"


class StorageUnavailable(ContestError):
    kind = "storage_unavailable"
    status_code = 503
    default_message = "storageUnavailable"

    def __init__(self, message: str | None = None, *, retryable: bool = False, **context: Any) -> None:
        super().__init__(message, **context)
        self.retryable = retryable


class DuplicateEntry(ContestError):
    kind = "duplicate_entry"
    status_code = 409
    default_message = "aliasInUse"


__all__ = [
    "ContestError",
    "NotFound",
    "Forbidden",
    "PreconditionFailed",
    "InvalidInput",
    "StorageUnavailable",
    "DuplicateEntry",
]
