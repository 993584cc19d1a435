"""Health check API route for textswap-service.

GET /health is a liveness probe: it answers 200 whenever the process is
serving requests and never calls the upstream.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status

from textswap import __version__
from textswap.core.constants import DEFAULT_SERVICE_NAME
from textswap.models.responses import HealthResponse


# =============================================================================
# Constants (S1192: Avoid duplicated string literals)
# =============================================================================

STATUS_OK = "ok"
HEALTH_MESSAGE = "API server is running"


# =============================================================================
# Router
# =============================================================================

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe endpoint.

    Returns:
        HealthResponse with status 'ok'.
    """
    return HealthResponse(
        status=STATUS_OK,
        message=HEALTH_MESSAGE,
        service=getattr(request.app.state, "service_name", DEFAULT_SERVICE_NAME),
        version=__version__,
    )
