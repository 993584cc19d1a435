"""FastAPI application entrypoint for textswap-service.

Patterns applied:
- asynccontextmanager lifespan (modern FastAPI pattern, not deprecated @app.on_event)
- configure_logging() called ONCE in lifespan startup
- Upstream transport, orchestrator, batch runner and editing service built
  once per process and kept on app.state
- Docs disabled in production
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from textswap import __version__
from textswap.api.error_handlers import register_exception_handlers
from textswap.api.routes.health import router as health_router
from textswap.api.routes.vision import router as vision_router
from textswap.core.config import Settings, get_settings
from textswap.core.constants import API_KEY_HEADER, REQUEST_ID_HEADER
from textswap.core.logging import (
    configure_logging,
    get_logger,
    new_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from textswap.observability.tracing import (
    TracingMiddleware,
    setup_tracing,
    shutdown_tracing,
)
from textswap.orchestration.batch import BatchRunner
from textswap.orchestration.orchestrator import FallbackOrchestrator
from textswap.providers.base import ChatCompletionTransport
from textswap.providers.openrouter import OpenRouterTransport
from textswap.services.editing import TextEditingService


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "textswap-service"
APP_DESCRIPTION = "Text detection and replacement in images via multi-model fallback"
APP_VERSION = __version__


def build_transport(settings: Settings) -> ChatCompletionTransport:
    """Create the upstream transport described by settings."""
    return OpenRouterTransport(
        base_url=settings.upstream_base_url,
        request_timeout=settings.request_timeout_seconds,
        models_timeout=settings.models_timeout_seconds,
    )


# =============================================================================
# Lifespan Context Manager (Modern FastAPI Pattern)
# =============================================================================
def make_lifespan(
    settings: Settings,
    transport: ChatCompletionTransport | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build the lifespan for an app.

    Args:
        settings: Application settings.
        transport: Optional upstream transport (tests inject a stub);
            an OpenRouterTransport is built from settings otherwise.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # =====================================================================
        # STARTUP
        # =====================================================================
        configure_logging(level=settings.log_level, force=True)
        logger = get_logger(__name__)

        if settings.tracing_enabled:
            setup_tracing(settings.service_name, settings.otlp_endpoint)

        upstream = transport or build_transport(settings)
        orchestrator = FallbackOrchestrator(upstream)
        batch_runner = BatchRunner(orchestrator, concurrency_limit=settings.batch_concurrency)

        app.state.settings = settings
        app.state.service_name = settings.service_name
        app.state.transport = upstream
        app.state.editing_service = TextEditingService(orchestrator, batch_runner, settings)

        logger.info(
            "Application starting",
            service=APP_NAME,
            version=APP_VERSION,
            environment=settings.environment,
            port=settings.port,
            credential_configured=bool(settings.openrouter_api_key),
            discover_models=settings.discover_models,
        )

        yield

        # =====================================================================
        # SHUTDOWN
        # =====================================================================
        logger.info("Application shutting down", service=APP_NAME)
        await upstream.aclose()
        app.state.editing_service = None
        if settings.tracing_enabled:
            shutdown_tracing()

    return lifespan


# =============================================================================
# Correlation ID Middleware
# =============================================================================
async def correlation_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a correlation id to every log line of the request."""
    correlation_id = request.headers.get(REQUEST_ID_HEADER) or new_correlation_id()
    token = set_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        reset_correlation_id(token)
    response.headers[REQUEST_ID_HEADER] = correlation_id
    return response


# =============================================================================
# Application Factory
# =============================================================================
def create_app(
    settings: Settings | None = None,
    transport: ChatCompletionTransport | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use (cached get_settings() by default).
        transport: Optional upstream transport override.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=make_lifespan(settings, transport),
    )

    # =========================================================================
    # Middleware (last added runs first)
    # =========================================================================
    app.middleware("http")(correlation_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_origin_regex=settings.cors_allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", API_KEY_HEADER, REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    if settings.tracing_enabled:
        app.add_middleware(TracingMiddleware, exclude_paths=["/health"])

    # =========================================================================
    # Routers and Exception Handlers
    # =========================================================================
    app.include_router(health_router)
    app.include_router(vision_router)
    register_exception_handlers(app)

    return app


app = create_app()


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "textswap.main:app",
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level.lower(),
    )
