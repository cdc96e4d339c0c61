"""Exception taxonomy for TaskLedger.

Every error surfaced to an HTTP caller derives from ``TaskLedgerError`` and carries the status code and error code it
is rendered with. ``InvalidTokenError`` is raised by the token service only and is translated to ``Forbidden`` by the
auth guard.
"""

from fastapi import status


class TaskLedgerError(Exception):
    """Base exception for TaskLedger errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(TaskLedgerError):
    """Malformed pagination parameters or request fields."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class Unauthenticated(TaskLedgerError):
    """No usable credentials were presented, or the password did not match."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"


class Forbidden(TaskLedgerError):
    """Credentials were presented but are invalid or expired."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class NotFoundError(TaskLedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class ConflictError(TaskLedgerError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class InternalFailure(TaskLedgerError):
    """Persistence or hashing failure. Fatal to the current request only."""


class InvalidTokenError(Exception):
    """A bearer token failed signature, structure or expiry checks."""


__all__ = [
    "ConflictError",
    "Forbidden",
    "InternalFailure",
    "InvalidTokenError",
    "NotFoundError",
    "TaskLedgerError",
    "Unauthenticated",
    "ValidationError",
]
