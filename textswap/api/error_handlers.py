"""Error handlers for FastAPI exception handling.

Error Response Schema:
{
    "error": "Human-readable message",
    "code": "ERROR_CODE",          (optional)
    "tried": ["model-a", ...]      (only for UPSTREAM_EXHAUSTED)
}

Status codes:
- 400 ValidationError, RequestValidationError, MissingCredentialError
- 502 CandidatesExhaustedError (and any other UpstreamError)
- 500 anything else
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from textswap.core.exceptions import (
    CandidatesExhaustedError,
    ClientError,
    ErrorCode,
    TextSwapError,
    UpstreamError,
)
from textswap.core.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


# =============================================================================
# Error Response Model (Pydantic)
# =============================================================================


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint.

    Attributes:
        error: Human-readable error message.
        code: Machine-readable error code.
        tried: Candidates attempted before giving up.
    """

    error: str
    code: str | None = None
    tried: list[str] | None = None


# =============================================================================
# Status Code Mapping
# =============================================================================


def get_status_code_for_error(error: Exception) -> int:
    """Determine HTTP status code based on exception type.

    Args:
        error: The exception to get status code for.

    Returns:
        Appropriate HTTP status code.
    """
    if isinstance(error, ClientError):
        return 400
    if isinstance(error, UpstreamError):
        return 502
    return 500


# =============================================================================
# Error Response Builder
# =============================================================================


def build_error_response(error: TextSwapError) -> ErrorResponse:
    """Build the error body for a service exception."""
    tried = error.tried if isinstance(error, CandidatesExhaustedError) else None
    return ErrorResponse(error=error.message, code=error.error_code, tried=tried)


def _format_validation_message(exc: RequestValidationError) -> str:
    """Turn the first pydantic error into a field-specific message.

    ``("body", "imageDataUrl")`` missing -> "imageDataUrl is required".
    """
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first: dict[str, Any] = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or "body"
    error_type = first.get("type", "")

    if error_type == "missing" or (
        error_type == "string_too_short" and first.get("input") == ""
    ):
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


# =============================================================================
# Exception Handlers
# =============================================================================


async def textswap_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle TextSwapError and its subclasses.

    Args:
        _request: The FastAPI request (unused).
        exc: The exception that was raised.

    Returns:
        JSONResponse with the mapped status code.
    """
    if not isinstance(exc, TextSwapError):
        return await generic_error_handler(_request, exc)

    status_code = get_status_code_for_error(exc)
    logger.info(
        "Request failed",
        status_code=status_code,
        code=exc.error_code,
        error=exc.message,
    )
    response = build_error_response(exc)
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(exclude_none=True),
    )


async def request_validation_error_handler(
    _request: Request, exc: Exception
) -> JSONResponse:
    """Handle FastAPI body validation failures as 400 with a field message."""
    if not isinstance(exc, RequestValidationError):
        return await generic_error_handler(_request, exc)

    response = ErrorResponse(
        error=_format_validation_message(exc),
        code=ErrorCode.VALIDATION_ERROR.value,
    )
    return JSONResponse(status_code=400, content=response.model_dump(exclude_none=True))


async def generic_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    The exception text is logged, never returned to the caller.
    """
    logger.error("Unhandled exception", error=str(exc), error_type=type(exc).__name__)
    response = ErrorResponse(
        error=INTERNAL_ERROR_MESSAGE,
        code=ErrorCode.INTERNAL_ERROR.value,
    )
    return JSONResponse(status_code=500, content=response.model_dump(exclude_none=True))


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(TextSwapError, textswap_error_handler)

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_error_handler)
