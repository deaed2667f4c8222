"""Exception handlers: every failure leaves the API as the same JSON envelope."""

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from resonansi.core.errors import AppError
from resonansi.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal Server Error"


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is None or settings.APP_ENV == "prod"


def error_envelope(
    request: Request,
    status_code: int,
    message: str,
    details: Any = None,
    exc: BaseException | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """{success: false, statusCode, message, details?, stack?}; stack only outside production."""
    stack = None
    if exc is not None and not _is_production(request):
        stack = "".join(traceback.format_exception(exc))
    body = ErrorResponse(statusCode=status_code, message=message, details=details, stack=stack)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s",
            exc.message,
            exc_info=exc,
            extra={"path": request.url.path},
        )
        message = GENERIC_SERVER_ERROR if _is_production(request) else exc.message
    else:
        logger.info(
            "Request rejected",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_type": type(exc).__name__,
            },
        )
        message = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_envelope(request, exc.status_code, message, exc.details, exc, headers)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    return error_envelope(
        request,
        exc.status_code,
        message,
        details,
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_envelope(request, 422, "Invalid request", details=exc.errors())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    message = GENERIC_SERVER_ERROR if _is_production(request) else str(exc) or GENERIC_SERVER_ERROR
    return error_envelope(request, 500, message, exc=exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
