"""Error kinds raised by the storefront services.

Services catch these at their boundary and turn them into an ActionResult;
only infrastructure faults (database or redis unreachable) propagate.
"""

from pydantic import ValidationError as PydanticValidationError


class StorefrontError(Exception):
    """Base class for user-facing failures."""

    kind = "StorefrontError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(StorefrontError):
    kind = "NotFound"


class OutOfStock(StorefrontError):
    kind = "OutOfStock"


class Unauthorized(StorefrontError):
    kind = "Unauthorized"


class ValidationError(StorefrontError, ValueError):
    # also a ValueError so pydantic validators report it as a field error
    kind = "ValidationError"


class ConflictError(StorefrontError):
    kind = "ConflictError"


def format_error(exc: Exception) -> str:
    if isinstance(exc, PydanticValidationError):
        messages = []
        for err in exc.errors():
            msg = err.get("msg", "")
            # pydantic prefixes messages of ValueErrors raised in validators
            messages.append(msg.removeprefix("Value error, "))
        return ". ".join(messages)
    if isinstance(exc, StorefrontError):
        return exc.message
    return str(exc)


def error_kind(exc: Exception) -> str:
    if isinstance(exc, PydanticValidationError):
        return ValidationError.kind
    return getattr(exc, "kind", type(exc).__name__)
