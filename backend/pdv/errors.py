# Overview: Domain error kinds raised by services and mapped to HTTP responses.

"""
Domain errors.

WHY: Services raise one of these instead of returning status tuples, so the
same operation can be driven from routes, CLI commands, and tests. The Flask
app registers a handler that turns any DomainError into
``{"error": message, "details": {...}}`` with the error's status code.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for expected business failures."""

    status_code = 400
    code = "DomainError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(DomainError):
    """Entity missing, or owned by another tenant (indistinguishable on purpose)."""

    status_code = 404
    code = "NotFound"


class ForbiddenError(DomainError):
    """Principal is authenticated but lacks the required role or account status."""

    status_code = 403
    code = "Forbidden"


class ValidationError(DomainError, ValueError):
    """400-level input problem."""

    status_code = 400
    code = "ValidationFailed"


class InsufficientStockError(DomainError):
    """Requested quantity exceeds what is on hand."""

    status_code = 400
    code = "InsufficientStock"


class InsufficientPointsError(DomainError):
    """Redemption exceeds a loyalty account's available points."""

    status_code = 400
    code = "InsufficientPoints"

    def __init__(self, available: int, required: int):
        super().__init__(
            "Insufficient loyalty points",
            {"available": available, "required": required},
        )
        self.available = available
        self.required = required


class ConstraintViolationError(DomainError):
    """409-level conflict: the store rejected a write (duplicate, FK, CHECK)."""

    status_code = 409
    code = "ConstraintViolation"
