"""Translate failures into the service's structured error body.

Body shape: {error, message, timestamp, path, status, service}.
Mapping is by exception type only.
"""
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import SERVICE_NAME
from app.core.exceptions import ProgramServiceError
from app.schemas.program import ErrorResponse

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_REQUIRED",
    403: "INSUFFICIENT_PERMISSIONS",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        timestamp=datetime.now(timezone.utc),
        path=request.url.path,
        status=status_code,
        service=SERVICE_NAME,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app"""

    @app.exception_handler(ProgramServiceError)
    async def program_service_error_handler(request: Request, exc: ProgramServiceError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        else:
            logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
        return error_response(request, exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = ", ".join(
            f"{'.'.join(str(loc) for loc in e['loc'] if loc != 'body')}: {e['msg']}"
            for e in exc.errors()
        )
        logger.warning(f"Validation error on {request.url.path}: {message}")
        return error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            f"Validation failed: {message}",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            request,
            exc.status_code,
            _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error on {request.url.path}: {str(exc)}", exc_info=True)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "UNEXPECTED_ERROR",
            "Something went wrong. Please try again later.",
        )
