"""Domain error taxonomy.

Every failure a use case can report carries an :class:`ErrorKind` and a
stable, human-readable message. Mapping kinds to transport status codes is
the job of the HTTP layer (see ``main.py``); nothing in here knows about HTTP.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Machine-checkable classification of domain failures."""

    VALIDATION = "validation"
    BAD_REQUEST = "bad_request"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL = "internal"


class GatekeeperError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(GatekeeperError):
    """Malformed caller input."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid input data"


class BadRequestError(GatekeeperError):
    """Well-formed input that cannot be honoured in the current state."""

    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"


class ConflictError(GatekeeperError):
    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"


class UnauthorizedError(GatekeeperError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Invalid or expired token"


class ForbiddenError(GatekeeperError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(GatekeeperError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class TooManyRequestsError(GatekeeperError):
    kind = ErrorKind.TOO_MANY_REQUESTS
    default_message = "Too many requests"


class InternalError(GatekeeperError):
    """Storage or dispatcher failure surfaced at a use-case boundary."""

    kind = ErrorKind.INTERNAL
