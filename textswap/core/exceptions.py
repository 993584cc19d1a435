"""Custom exceptions for textswap-service.

Exception Hierarchy:
    TextSwapError (base)
    ├── ClientError (caller must change the request)
    │   ├── ValidationError
    │   └── MissingCredentialError
    └── UpstreamError (upstream models could not serve the request)
        └── CandidatesExhaustedError

Per-candidate upstream failures never become exceptions at this level: the
orchestrator records them in its attempt log and moves to the next
candidate. Only the aggregate outcome is raised, by the HTTP layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Error codes returned in the ``code`` field of error responses.

    Callers special-case MISSING_API_KEY to prompt for a credential
    instead of retrying.
    """

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_API_KEY = "MISSING_API_KEY"
    UPSTREAM_EXHAUSTED = "UPSTREAM_EXHAUSTED"


# =============================================================================
# Base Exception
# =============================================================================


class TextSwapError(Exception):
    """Base exception for all textswap-service errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.INTERNAL_ERROR,
        **kwargs: Any,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )

        for key, value in kwargs.items():
            setattr(self, key, value)


class ClientError(TextSwapError):
    """Base class for errors caused by the caller's request."""


class UpstreamError(TextSwapError):
    """Base class for errors caused by the upstream model API."""


# =============================================================================
# Client Errors
# =============================================================================


class ValidationError(ClientError):
    """Request failed validation before any upstream call.

    Attributes:
        field: Name of the offending request field.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.VALIDATION_ERROR, **kwargs)
        self.field = field


class MissingCredentialError(ClientError):
    """No upstream credential could be resolved for the request.

    Raised before any model candidate is attempted.
    """

    def __init__(
        self,
        message: str = "OpenRouter API key not configured",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.MISSING_API_KEY, **kwargs)


# =============================================================================
# Upstream Errors
# =============================================================================


class CandidatesExhaustedError(UpstreamError):
    """Every model candidate failed for an operation.

    Attributes:
        operation: Operation that was attempted (e.g. "detect_text").
        tried: Candidates attempted, in order.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        tried: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize CandidatesExhaustedError.

        Args:
            message: Error message shown to the caller.
            operation: Operation name.
            tried: Model ids that were attempted.
            **kwargs: Additional attributes.
        """
        super().__init__(message, error_code=ErrorCode.UPSTREAM_EXHAUSTED, **kwargs)
        self.operation = operation
        self.tried = tried or []
