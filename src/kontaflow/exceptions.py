"""Application exceptions raised by services and caught by the error handlers.

Services raise these to signal expected failures (bad input, missing rows,
permission problems, broken business rules). The handlers registered in
error_handlers.py translate them into the standard error envelope:
{"error": {"code": "...", "message": "...", ...}}.

Each subclass carries exactly the extra field it needs and contributes it to
the envelope through ``extra_fields()``.
"""

from typing import Any


class AppError(Exception):
    """Base class for all application errors.

    ``is_operational`` separates expected outcomes (logged as warnings, shown
    to the client as-is) from defects that only surface as a generic 500.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        *,
        is_operational: bool = True,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        self.is_operational = is_operational
        super().__init__(message)

    def extra_fields(self) -> dict[str, Any]:
        return {}

    def to_envelope(self) -> dict[str, Any]:
        """Build the error envelope returned to clients."""
        return {"error": {"code": self.code, "message": self.message, **self.extra_fields()}}


class ValidationError(AppError):
    """Raised when input fails schema validation. Carries messages per field."""

    def __init__(self, message: str, details: dict[str, list[str]] | None = None) -> None:
        self.details = details or {}
        super().__init__(message, 400, "VALIDATION_ERROR")

    def extra_fields(self) -> dict[str, Any]:
        return {"details": self.details} if self.details else {}


class UnauthorizedError(AppError):
    """Raised when the request carries no usable identity."""

    def __init__(self, message: str = "You must sign in to continue") -> None:
        super().__init__(message, 401, "UNAUTHORIZED")


class ForbiddenError(AppError):
    """Raised when the caller is known but not allowed to act."""

    def __init__(self, message: str = "You do not have permission to perform this action") -> None:
        super().__init__(message, 403, "FORBIDDEN")


class NotFoundError(AppError):
    """Raised when a requested entity does not exist."""

    def __init__(self, resource: str, identifier: object | None = None) -> None:
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} with id {identifier} not found"
        super().__init__(message, 404, "NOT_FOUND")


class ConflictError(AppError):
    """Raised when an operation conflicts with existing state (e.g. duplicate)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message, 409, "CONFLICT")

    def extra_fields(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class BusinessRuleError(AppError):
    """Raised when valid input breaks a domain rule."""

    def __init__(self, message: str, rule: str | None = None) -> None:
        self.rule = rule
        super().__init__(message, 422, "BUSINESS_RULE_VIOLATION")

    def extra_fields(self) -> dict[str, Any]:
        return {"rule": self.rule} if self.rule else {}
