import logging
from typing import Any, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.exception import HouseBudgetException
from app.schemas.result import Error, ErrorCategory, Result

logger = logging.getLogger(__name__)

STATUS_CATEGORIES = {
    400: ErrorCategory.BAD_REQUEST,
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHORIZATION,
    404: ErrorCategory.NOT_FOUND,
    409: ErrorCategory.RESOURCE_CONFLICT,
    422: ErrorCategory.VALIDATION,
}


def category_for_status(status_code: int) -> ErrorCategory:
    if status_code in STATUS_CATEGORIES:
        return STATUS_CATEGORIES[status_code]
    if status_code >= 500:
        return ErrorCategory.INTERNAL
    return ErrorCategory.BAD_REQUEST


def error_response(error: Error, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=Result.failure(error).model_dump(mode="json"),
        headers=headers,
    )


def describe_validation_errors(errors: Sequence[Any]) -> str:
    """Collapse pydantic error dicts into one line: `body -> email: value is not a valid email`."""
    parts = []
    for err in errors:
        location = " -> ".join(str(part) for part in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Validation failed"


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turns every error into a failed Result envelope.

    FastAPI resolves HTTPException and request validation errors with its own
    handlers before a middleware sees them, so `install` points those handlers
    at `to_response` too. Whatever still escapes is caught in `dispatch`.
    """

    def __init__(self, app, log_internal_errors: bool = True):
        super().__init__(app)
        self.log_internal_errors = log_internal_errors

    @classmethod
    def install(cls, app: FastAPI, log_internal_errors: bool = True) -> None:
        renderer = cls(app, log_internal_errors=log_internal_errors)

        async def handle(request: Request, ex: Exception) -> JSONResponse:
            return renderer.to_response(ex, request)

        for exc_type in (HouseBudgetException, StarletteHTTPException, RequestValidationError):
            app.add_exception_handler(exc_type, handle)
        app.add_middleware(cls, log_internal_errors=log_internal_errors)

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as ex:
            return self.to_response(ex, request)

    def to_response(self, ex: Exception, request: Request) -> JSONResponse:
        if isinstance(ex, HouseBudgetException):
            error = Error(message=ex.detail, status_code=ex.status_code, category=ex.category)
            return error_response(error, headers=ex.headers)

        if isinstance(ex, (RequestValidationError, ResponseValidationError, ValidationError)):
            error = Error(
                message=describe_validation_errors(ex.errors()),
                status_code=422,
                category=ErrorCategory.VALIDATION,
            )
            return error_response(error)

        if isinstance(ex, StarletteHTTPException):
            detail = ex.detail if isinstance(ex.detail, str) else str(ex.detail)
            error = Error(
                message=detail,
                status_code=ex.status_code,
                category=category_for_status(ex.status_code),
            )
            return error_response(error, headers=getattr(ex, "headers", None))

        if self.log_internal_errors:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=ex,
            )
        error = Error(
            message="An unexpected error occurred. Please try again later.",
            status_code=500,
            category=ErrorCategory.INTERNAL,
        )
        return error_response(error)
