"""Error response schemas.

All error responses use the same envelope:
{"error": {"code": "...", "message": "...", "details"?, "field"?, "rule"?, "stack"?}}.
Exception handlers in error_handlers.py construct these from application exceptions.
"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Inner error object with a machine-readable code and human-readable message.

    Optional members are only present for the error kinds that carry them:
    ``details`` for validation failures, ``field`` for conflicts, ``rule`` for
    business-rule violations and ``stack`` for unexpected errors in development.
    """

    code: str
    message: str
    details: dict[str, list[str]] | None = None
    field: str | None = None
    rule: str | None = None
    stack: str | None = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned by all error responses."""

    error: ErrorDetail
