"""
Dashboard error taxonomy.

Every failure crossing the store boundary is one of these kinds:
- Unauthenticated: no caller identity established
- Unauthorized: role or ownership denies the operation
- NotFound: a referenced entity id does not exist
- InvalidArgument: malformed input (empty string, negative value, bad enum)
- InvalidStatus: local rejection of an unrecognized status string
- RemoteUnavailable: the store could not be reached

Only RemoteUnavailable is retryable, and only by the caller.
"""
from __future__ import annotations
from typing import Any


class DashboardError(Exception):
    """Base class for all dashboard failures."""

    kind: str = "dashboard_error"
    retryable: bool = False

    def __init__(self, message: str = "", operation: str | None = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.operation = operation

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "operation": self.operation,
            "retryable": self.retryable,
        }


class Unauthenticated(DashboardError):
    kind = "unauthenticated"


class Unauthorized(DashboardError):
    kind = "unauthorized"


class NotFound(DashboardError):
    kind = "not_found"


class InvalidArgument(DashboardError):
    kind = "invalid_argument"


class InvalidStatus(InvalidArgument):
    """Unrecognized status string, rejected before submission."""

    kind = "invalid_status"


class RemoteUnavailable(DashboardError):
    kind = "remote_unavailable"
    retryable = True


ERROR_KINDS: dict[str, type[DashboardError]] = {
    cls.kind: cls
    for cls in (
        Unauthenticated,
        Unauthorized,
        NotFound,
        InvalidArgument,
        InvalidStatus,
        RemoteUnavailable,
    )
}


def error_from_kind(kind: str, message: str = "", operation: str | None = None) -> DashboardError:
    """Rebuild an error from its wire kind. Unknown kinds become RemoteUnavailable."""
    cls = ERROR_KINDS.get(kind, RemoteUnavailable)
    return cls(message, operation=operation)
