"""
Error kinds shared by the server and the client.

Services raise these; the REST layer turns them into status codes and the
client turns status codes back into them, so both sides speak the same
vocabulary.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    SERVICE = "service"


class AppError(Exception):
    """Base class for every error a caller is expected to handle."""

    kind: ErrorKind = ErrorKind.SERVICE
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Bad input shape or policy violation."""

    kind = ErrorKind.VALIDATION
    status_code = 400


class ConflictError(AppError):
    """Uniqueness or dependency violation."""

    kind = ErrorKind.CONFLICT
    status_code = 409


class UnauthorizedError(AppError):
    """Bad credentials, or a token with no valid refresh path."""

    kind = ErrorKind.UNAUTHORIZED
    status_code = 401


class ForbiddenError(AppError):
    """Authenticated but not entitled."""

    kind = ErrorKind.FORBIDDEN
    status_code = 403


class NotFoundError(AppError):
    """Missing, or owned by someone else. Callers cannot tell which."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class NetworkError(AppError):
    """Transport failure or timeout talking to the server."""

    kind = ErrorKind.NETWORK
    status_code = 0


class ServiceError(AppError):
    """Unexpected failure below the service layer (already logged)."""


_BY_STATUS: dict[int, type[AppError]] = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def error_for_status(status_code: int, message: str) -> AppError:
    """Build the error matching an HTTP status code."""
    return _BY_STATUS.get(status_code, ServiceError)(message)
