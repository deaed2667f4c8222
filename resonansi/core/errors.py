"""Application error taxonomy; rendered as a JSON envelope by the app factory."""

from typing import Any


class AppError(Exception):
    """Base for errors that map to an HTTP status and a client-safe message."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input; message names the violated rule."""

    status_code = 400


class ConflictError(AppError):
    """Duplicate value for a unique field."""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class UnauthorizedError(AppError):
    """No credential presented."""

    status_code = 401


class ForbiddenError(AppError):
    """Credential present but not sufficient."""

    status_code = 403


class TokenExpiredError(ForbiddenError):
    pass


class TokenInvalidError(ForbiddenError):
    pass


class InternalError(AppError):
    status_code = 500
