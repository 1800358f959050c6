"""
Error taxonomy and the single place that turns errors into HTTP responses.

Business code raises these; ``register_exception_handlers`` maps each family
to its status code and the error envelope ``{"error": true, "message", "details"?}``.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from storefront.core.settings import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class ProductUnavailable(ValidationError):
    default_message = "Product not available"


class InvalidStatusTransition(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class InsufficientStock(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Insufficient stock"


class TenantRequired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Tenant not specified. Send the tenant header, use a tenant path or subdomain, or authenticate."


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class TokenExpired(Unauthorized):
    default_message = "Token expired"


class TokenInvalid(Unauthorized):
    default_message = "Invalid token"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class TenantInactive(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Tenant is not active"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class TenantNotFound(NotFoundError):
    default_message = "Tenant not found"


class ProductNotFound(NotFoundError):
    default_message = "Product not found"


class DuplicateKeyError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, try again later"


class InternalError(AppError):
    pass


def error_body(message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": True, "message": message}
    if details is not None:
        body["details"] = details
    return body


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        details = exc.details if settings.EXPOSE_ERROR_DETAILS else None
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.default_message, details))
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details), headers=headers)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body("Validation error", details))


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # unique constraints that slipped past the service-level checks (races)
    logger.info("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(DuplicateKeyError.default_message),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = {"type": type(exc).__name__, "detail": str(exc)} if settings.EXPOSE_ERROR_DETAILS else None
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
