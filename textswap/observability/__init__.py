"""
Observability package: OpenTelemetry tracing for textswap-service.

Traces are exported over OTLP gRPC when an endpoint is configured, to the
console otherwise.
"""

from textswap.observability.tracing import (
    TracingMiddleware,
    attempt_span,
    current_trace_id,
    get_tracer,
    inject_trace_context,
    record_attempt,
    setup_tracing,
    shutdown_tracing,
)

__all__ = [
    "setup_tracing",
    "shutdown_tracing",
    "TracingMiddleware",
    "get_tracer",
    "current_trace_id",
    "inject_trace_context",
    "attempt_span",
    "record_attempt",
]
