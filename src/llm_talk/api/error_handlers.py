"""Error handlers for API routes.

Maps the LLM-Talk exception taxonomy onto HTTP responses with one
ErrorResponse shape. Bad caller input is a 400, unknown sessions a 404,
and session-state, provider and persistence faults a 500 carrying a
machine-readable code and the retryable flag. The chained cause is only
exposed outside production.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from llm_talk.core.config import Settings, get_settings
from llm_talk.core.exceptions import (
    LLMTalkError,
    ProviderUnavailableError,
    SessionNotFoundError,
    SessionValidationError,
)


logger = logging.getLogger(__name__)


# Type alias for exception handler
ExceptionHandler = Callable[[Request, Exception], Awaitable[JSONResponse]]


# =============================================================================
# Error Response Model
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type/category
        detail: Human-readable error description
        code: Machine-readable error code
        path: Request path that caused the error
        retryable: Whether the caller may retry the same request
        cause: Underlying cause, omitted in production
    """

    error: str = Field(..., description="Error type or category")
    detail: str = Field(..., description="Human-readable error description")
    code: str | None = Field(default=None, description="Machine-readable error code")
    path: str | None = Field(default=None, description="Request path that caused the error")
    retryable: bool = Field(default=False, description="Whether retrying may succeed")
    cause: str | None = Field(default=None, description="Underlying cause (non-production only)")


def _settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def status_code_for(exc: LLMTalkError) -> int:
    """HTTP status for a domain exception."""
    if isinstance(exc, (SessionValidationError, ProviderUnavailableError)):
        return 400
    if isinstance(exc, SessionNotFoundError):
        return 404
    return 500


# =============================================================================
# Exception Handlers
# =============================================================================

async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handle HTTPException with ErrorResponse schema."""
    error_type = {
        400: "BadRequest",
        404: "NotFound",
        422: "ValidationError",
        500: "InternalServerError",
        503: "ServiceUnavailable",
    }.get(exc.status_code, "Error")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=error_type,
            detail=str(exc.detail),
            path=str(request.url.path),
        ).model_dump(),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic request validation errors.

    Args:
        request: FastAPI request object
        exc: RequestValidationError raised

    Returns:
        JSONResponse with ErrorResponse format and field details
    """
    field_errors = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        field_errors.append(f"{loc}: {msg}")

    detail = "; ".join(field_errors) if field_errors else "Validation error"

    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error="ValidationError",
            detail=detail,
            code="VALIDATION_ERROR",
            path=str(request.url.path),
        ).model_dump(),
    )


async def llm_talk_exception_handler(
    request: Request,
    exc: LLMTalkError,
) -> JSONResponse:
    """Handle every LLMTalkError subtype, provider faults included.

    Args:
        request: FastAPI request object
        exc: Domain exception raised by the orchestrator or a route

    Returns:
        JSONResponse with the mapped status code
    """
    status_code = status_code_for(exc)
    cause = None
    if exc.__cause__ is not None and not _settings_for(request).is_production:
        cause = repr(exc.__cause__)

    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={
                "path": str(request.url.path),
                "error_type": type(exc).__name__,
                "code": exc.code,
                "session_id": exc.session_id,
            },
        )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=str(exc),
            code=exc.code,
            path=str(request.url.path),
            retryable=exc.retryable,
            cause=cause,
        ).model_dump(),
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={
            "path": str(request.url.path),
            "error_type": type(exc).__name__,
        },
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="InternalServerError",
            detail="An unexpected error occurred",
            code="INTERNAL_ERROR",
            path=str(request.url.path),
            cause=None if _settings_for(request).is_production else repr(exc),
        ).model_dump(),
    )


# =============================================================================
# Registration Function
# =============================================================================

def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(
        HTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        LLMTalkError,
        llm_talk_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        Exception,
        generic_exception_handler,
    )


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
    "status_code_for",
]
