"""
OpenTelemetry tracing for textswap-service.

Span layout for one API call:

    POST /api/replace-text            (TracingMiddleware, SERVER)
    ├── upstream.attempt  model=A     (attempt_span, CLIENT)  outcome=transport_error
    └── upstream.attempt  model=B     (attempt_span, CLIENT)  outcome=success

The trace context is injected into every outbound upstream request, and
the active trace id is added to log lines. Until setup_tracing() runs the
global tracer is a no-op, so spans cost nothing when tracing is disabled.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Callable, Optional

from opentelemetry import trace
from opentelemetry.propagate import extract, inject
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanKind, Tracer

from textswap.core.constants import REQUEST_ID_HEADER

ATTEMPT_SPAN_NAME = "upstream.attempt"

# Global tracer provider reference
_tracer_provider: Optional[TracerProvider] = None


def setup_tracing(
    service_name: str = "textswap-service",
    otlp_endpoint: Optional[str] = None,
) -> TracerProvider:
    """
    Install a TracerProvider for the process.

    Args:
        service_name: Resource service name
        otlp_endpoint: OTLP gRPC endpoint (e.g. http://localhost:4317); spans
            go to the console when unset. The exporter ships in the ``otlp``
            extra.

    Returns:
        The installed TracerProvider
    """
    global _tracer_provider

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
    else:
        exporter = ConsoleSpanExporter()

    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def shutdown_tracing() -> None:
    """Flush and shut down the provider installed by setup_tracing()."""
    global _tracer_provider

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str = __name__) -> Tracer:
    return trace.get_tracer(name)


def current_trace_id() -> Optional[str]:
    """Hex trace id of the active span, or None outside a recorded trace."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def inject_trace_context(headers: dict[str, str]) -> dict[str, str]:
    """Add W3C trace headers for an outbound upstream request."""
    inject(headers)
    return headers


# =============================================================================
# Upstream Attempt Spans
# =============================================================================


@contextmanager
def attempt_span(
    model: str,
    position: int,
    tracer: Optional[Tracer] = None,
) -> Iterator[Span]:
    """
    Span around one candidate call.

    The caller finishes it with record_attempt(). Exceptions escaping the
    block are recorded on the span and re-raised.
    """
    active_tracer = tracer or get_tracer(__name__)
    with active_tracer.start_as_current_span(ATTEMPT_SPAN_NAME, kind=SpanKind.CLIENT) as span:
        span.set_attribute("upstream.model", model)
        span.set_attribute("upstream.position", position)
        yield span


def record_attempt(
    span: Span,
    outcome: str,
    status_code: Optional[int] = None,
    elapsed_ms: Optional[float] = None,
) -> None:
    """Tag an attempt span with its outcome."""
    span.set_attribute("upstream.outcome", outcome)
    if status_code is not None:
        span.set_attribute("upstream.status_code", status_code)
    if elapsed_ms is not None:
        span.set_attribute("upstream.elapsed_ms", round(elapsed_ms, 1))


# =============================================================================
# ASGI Middleware
# =============================================================================


class TracingMiddleware:
    """
    ASGI middleware opening a SERVER span per HTTP request.

    Continues any trace context the caller propagated and tags the span
    with the request's X-Request-ID when one was sent.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        exclude_paths: Optional[list[str]] = None,
        tracer_name: str = "textswap.http",
    ) -> None:
        self.app = app
        self.exclude_paths = set(exclude_paths or [])
        self.tracer = get_tracer(tracer_name)

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        path = scope.get("path", "/")
        if scope["type"] != "http" or path in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        headers = {
            key.decode("latin-1").lower(): value.decode("latin-1")
            for key, value in scope.get("headers", [])
        }
        method = scope.get("method", "GET")
        status_code = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        with self.tracer.start_as_current_span(
            f"{method} {path}",
            context=extract(headers),
            kind=SpanKind.SERVER,
        ) as span:
            span.set_attribute("http.method", method)
            span.set_attribute("http.route", path)
            request_id = headers.get(REQUEST_ID_HEADER.lower())
            if request_id:
                span.set_attribute("textswap.request_id", request_id)

            try:
                await self.app(scope, receive, send_wrapper)
            except Exception as e:
                span.record_exception(e)
                raise
            finally:
                span.set_attribute("http.status_code", status_code)
