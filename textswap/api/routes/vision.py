"""Image text API routes.

Endpoints:
- POST /api/detect-text        detect text regions
- POST /api/edit-image         free-form image modification
- POST /api/replace-text       replace one piece of text
- POST /api/analyze-text       typography report for one region
- POST /api/batch-detect-text  detect text in several images

The upstream credential comes from the x-openrouter-key header, then the
body's apiKey field, then the configured default.
"""

from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException, Request, status

from textswap.core.config import get_settings
from textswap.core.logging import get_logger
from textswap.models.requests import (
    AnalyzeTextRequest,
    BatchDetectRequest,
    DetectTextRequest,
    EditImageRequest,
    ReplaceTextRequest,
)
from textswap.models.responses import (
    AnalyzeTextResponse,
    BatchDetectResponse,
    DetectTextResponse,
    EditedImageResponse,
)
from textswap.orchestration.credentials import resolve_api_key
from textswap.services.editing import TextEditingService


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(prefix="/api", tags=["vision"])
logger = get_logger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================


def _get_editing_service(request: Request) -> TextEditingService:
    """Get the editing service from app state.

    Raises:
        HTTPException: 503 if the service was not initialized.
    """
    service: TextEditingService | None = getattr(request.app.state, "editing_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Editing service not initialized",
        )
    return service


def _api_key(request: Request, header_value: str | None, body_value: str | None) -> str | None:
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return resolve_api_key(header_value, body_value, settings.openrouter_api_key)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/detect-text", response_model=DetectTextResponse)
async def detect_text(
    request: Request,
    body: DetectTextRequest,
    x_openrouter_key: str | None = Header(default=None),
) -> DetectTextResponse:
    """Detect text regions in an image.

    Returns:
        Detected text items with positions in percentages and the model used.
    """
    service = _get_editing_service(request)
    return await service.detect_text(
        body.image_data_url,
        _api_key(request, x_openrouter_key, body.api_key),
    )


@router.post("/edit-image", response_model=EditedImageResponse)
async def edit_image(
    request: Request,
    body: EditImageRequest,
    x_openrouter_key: str | None = Header(default=None),
) -> EditedImageResponse:
    """Apply a free-form modification to an image."""
    service = _get_editing_service(request)
    return await service.edit_image(
        body.image_data_url,
        body.prompt,
        _api_key(request, x_openrouter_key, body.api_key),
    )


@router.post("/replace-text", response_model=EditedImageResponse)
async def replace_text(
    request: Request,
    body: ReplaceTextRequest,
    x_openrouter_key: str | None = Header(default=None),
) -> EditedImageResponse:
    """Replace one piece of text, keeping its font, color and placement."""
    service = _get_editing_service(request)
    return await service.replace_text(
        body.image_data_url,
        body.original_text,
        body.new_text,
        _api_key(request, x_openrouter_key, body.api_key),
        coordinates=body.coordinates,
        font_style=body.font_style,
        color_analysis=body.color_analysis,
    )


@router.post("/analyze-text", response_model=AnalyzeTextResponse)
async def analyze_text(
    request: Request,
    body: AnalyzeTextRequest,
    x_openrouter_key: str | None = Header(default=None),
) -> AnalyzeTextResponse:
    """Produce a typography report for one text region."""
    service = _get_editing_service(request)
    return await service.analyze_text(
        body, _api_key(request, x_openrouter_key, body.api_key)
    )


@router.post("/batch-detect-text", response_model=BatchDetectResponse)
async def batch_detect_text(
    request: Request,
    body: BatchDetectRequest,
    x_openrouter_key: str | None = Header(default=None),
) -> BatchDetectResponse:
    """Detect text in several images.

    Per-image failures are reported in ``results``; the request itself
    succeeds as long as a credential resolved.
    """
    service = _get_editing_service(request)
    logger.info("Batch detection requested", images=len(body.images))
    return await service.batch_detect_text(
        body.images, _api_key(request, x_openrouter_key, body.api_key)
    )
