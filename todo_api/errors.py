"""
Typed workflow errors.

Services raise these instead of HTTP exceptions; the API boundary in
``todo_api.main`` maps each ``ErrorKind`` to a status code.
"""
from enum import Enum


class ErrorKind(str, Enum):
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    INTERNAL = "internal"


class AppError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, field: str | None = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"


class Unauthorized(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidToken(AppError):
    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid token"


class ExpiredToken(AppError):
    kind = ErrorKind.EXPIRED_TOKEN
    default_message = "Token expired"


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class BadRequest(AppError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"
