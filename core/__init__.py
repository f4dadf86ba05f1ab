#Shared building blocks with no Django or routing dependencies.
#Only the error taxonomy lives here so every layer (routing, dispatch, gateway)
#can raise the same typed errors without import cycles.

from .exceptions import (
    DispatchError,
    NotFoundError,
    ConflictError,
    ValidationError,
    PermissionDeniedError,
)

__all__ = [
    "DispatchError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "PermissionDeniedError",
]
