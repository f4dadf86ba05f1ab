"""
Purpose: Error taxonomy shared by every layer.
What it does:
Every failure a caller can observe is exactly one of these types.
Each carries a machine readable `code` next to the human message so an outer
HTTP layer can map them to status codes without string matching.

- NotFoundError: entity absent (or hidden from a non-owner on purpose)
- ConflictError: state machine precondition violated
- ValidationError: malformed input (coordinates, distances, speeds)
- PermissionDeniedError: the caller's role lacks the capability
"""

from typing import Optional


class DispatchError(Exception):
    """Base class for all domain errors."""

    default_code = "DISPATCH_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NotFoundError(DispatchError):
    default_code = "NOT_FOUND"


class ConflictError(DispatchError):
    default_code = "CONFLICT"


class ValidationError(DispatchError, ValueError):
    default_code = "VALIDATION_ERROR"


class PermissionDeniedError(DispatchError):
    default_code = "FORBIDDEN"
