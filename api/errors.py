"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from auth.exceptions import (
    EmailNotAuthorizedError,
    ForbiddenError,
    RateLimitedError,
    UnauthenticatedError,
)
from clients.postgres_client import StoreError
from core.exceptions import InvalidTransitionError, SubmissionNotFoundError

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, request: Request, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content=error_response(
            code,
            message,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(UnauthenticatedError)
    async def unauthenticated_handler(request: Request, exc: UnauthenticatedError):
        return _error(401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required", request)

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(request: Request, exc: ForbiddenError):
        return _error(403, ErrorCodes.FORBIDDEN, "Insufficient permissions", request)

    @app.exception_handler(EmailNotAuthorizedError)
    async def email_not_authorized_handler(request: Request, exc: EmailNotAuthorizedError):
        return _error(403, ErrorCodes.EMAIL_NOT_AUTHORIZED, "Email not authorized for this role", request)

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError):
        return _error(
            429,
            ErrorCodes.RATE_LIMITED,
            f"Too many requests. Please wait {exc.retry_after_seconds} seconds.",
            request,
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(SubmissionNotFoundError)
    async def not_found_handler(request: Request, exc: SubmissionNotFoundError):
        return _error(404, ErrorCodes.NOT_FOUND, str(exc), request)

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return _error(409, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc), request)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _error(404, ErrorCodes.NOT_FOUND, message, request)
        return _error(400, ErrorCodes.INVALID_REQUEST, message, request)

    @app.exception_handler(ValidationError)
    async def model_error_handler(request: Request, exc: ValidationError):
        # Stored data that no longer fits its model
        logger.error(f"Model validation failed on {request.url.path}: {exc.error_count()} errors")
        return _error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()), request)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"Store failure on {request.url.path}: {exc}")
        return _error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)
