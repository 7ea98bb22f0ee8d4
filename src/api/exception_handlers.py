"""Centralized exception handlers.

Domain errors become a structured body with a stable ``kind``:

    {"success": false, "kind": "InvalidCredentials", "message": "Invalid credentials"}

Anything unexpected is logged with its traceback and reported as a generic
internal error.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from domain.model.errors import (
    DomainError,
    DuplicateError,
    EmailDeliveryError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    ProviderError,
    UnauthenticatedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (InvalidOrExpiredTokenError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (EmailDeliveryError, status.HTTP_502_BAD_GATEWAY),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(exc: DomainError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def error_response(status_code: int, kind: str, message: str, **extra) -> JSONResponse:
    content = {"success": False, "kind": kind, "message": message, **extra}
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI application."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        status_code = status_for(exc)
        logger.info(
            "Domain error",
            extra={
                "method": request.method,
                "path": request.url.path,
                "kind": exc.kind,
                "status_code": status_code,
            },
        )
        return error_response(status_code, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            ValidationError.kind,
            "Validation failed",
            errors=errors,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            extra={"method": request.method, "path": request.url.path},
            exc_info=exc,
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "InternalError",
            "Internal server error",
        )
