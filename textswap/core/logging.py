"""Structured logging for textswap-service.

Every line is one JSON object on stdout:

    {"event": "Candidate failed", "level": "warning", "logger":
     "textswap.orchestration.orchestrator", "model": "openai/gpt-4o",
     "status_code": 500, "correlation_id": "9f1c...", "trace_id": "4bf9...",
     "timestamp": "..."}

The correlation id comes from the caller's X-Request-ID (or a fresh one) and
ties every upstream attempt of a request together. The trace id is present
only while an OpenTelemetry span is recording.

Module loggers are lazy: they are created at import time but resolve the
structlog configuration on every call, so the level and stream chosen by
the app lifespan apply to them too.
"""

import contextvars
import sys
import uuid
from typing import Any, TextIO

import structlog
from structlog.types import EventDict

from textswap.core.constants import DEFAULT_LOG_LEVEL
from textswap.observability.tracing import current_trace_id

_configured: bool = False

# Key the lazy proxy carries the module name under; renamed to "logger"
_LOGGER_NAME_KEY = "logger_name"


# =============================================================================
# Request Correlation
# =============================================================================
_correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(correlation_id: str | None) -> contextvars.Token[str | None]:
    """Bind the id of the request being served to the current task.

    Returns:
        Token for reset_correlation_id().
    """
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token: contextvars.Token[str | None]) -> None:
    _correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def new_correlation_id() -> str:
    """Id for a request that did not send X-Request-ID."""
    return uuid.uuid4().hex


# =============================================================================
# Processors
# =============================================================================
def add_logger_name(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Emit the module name bound by get_logger() as ``logger``."""
    name = event_dict.pop(_LOGGER_NAME_KEY, None)
    if name is not None:
        event_dict["logger"] = name
    return event_dict


def add_correlation_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag the line with the current request's correlation id."""
    correlation_id = get_correlation_id()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_trace_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag the line with the active trace id so it can be joined to its span."""
    trace_id = current_trace_id()
    if trace_id is not None:
        event_dict["trace_id"] = trace_id
    return event_dict


_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


# =============================================================================
# Configuration
# =============================================================================
def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Install the JSON pipeline.

    The lifespan calls this with force=True and the configured level; any
    earlier call (a module logging before startup, a test) gets defaults.

    Args:
        level: Minimum level name; unknown names fall back to INFO.
        stream: Output stream, sys.stdout by default.
        force: Reconfigure even if already configured.
    """
    global _configured

    if _configured and not force:
        return

    structlog.configure(
        processors=[
            add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            add_correlation_id,
            add_trace_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get(level.upper(), _LEVELS["INFO"])
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )
    _configured = True


def reset_logging() -> None:
    """Forget that logging was configured (test isolation)."""
    global _configured
    _configured = False


def get_logger(name: str) -> Any:
    """Module logger, e.g. ``logger = get_logger(__name__)``."""
    configure_logging()
    return structlog.get_logger(**{_LOGGER_NAME_KEY: name})
