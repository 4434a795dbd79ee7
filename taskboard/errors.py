"""Error taxonomy shared by the store, the ordering engine and the API."""

from __future__ import annotations

from typing import Any, Optional


class TaskboardError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TaskboardError):
    """A required field is missing or a value is out of range."""

    status_code = 400
    code = "validation_error"


class AccessDenied(TaskboardError):
    status_code = 403
    code = "access_denied"


class NotFound(TaskboardError):
    status_code = 404
    code = "not_found"

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found", {"id": entity_id})
        self.kind = kind
        self.entity_id = entity_id


class Conflict(TaskboardError):
    """The request was made against an ordering that has since changed."""

    status_code = 409
    code = "conflict"


class StoreFailure(TaskboardError):
    status_code = 500
    code = "store_failure"
