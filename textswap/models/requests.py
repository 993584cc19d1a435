"""Request models for the caller-facing HTTP API.

Field names on the wire are camelCase (``imageDataUrl``, ``apiKey``); the
Python attributes are snake_case. Required text fields must be non-empty so
that a blank value is rejected before any upstream call.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Shared Value Objects
# =============================================================================


class Coordinates(CamelModel):
    """Bounding box of a text region, in percentages of the image size."""

    x: float
    y: float
    width: float = 0.0
    height: float = 0.0


class FontStyle(CamelModel):
    """Client-side font estimate used as a replacement hint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    font_weight: str | int | None = None


class ColorAnalysis(CamelModel):
    """Client-side color estimate used as a replacement hint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    text_color: str | None = None
    average_color: str | None = None


class ImageRequest(CamelModel):
    """Fields shared by every single-image operation."""

    image_data_url: str = Field(
        min_length=1,
        description="Image as a data:image/... URI or an http(s) URL",
    )
    api_key: str | None = Field(
        default=None,
        description="Upstream credential (the x-openrouter-key header wins)",
    )


# =============================================================================
# Operation Requests
# =============================================================================


class DetectTextRequest(ImageRequest):
    """Request body for POST /api/detect-text."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {"imageDataUrl": "data:image/png;base64,iVBORw0KGgo..."}
        },
    )


class EditImageRequest(ImageRequest):
    """Request body for POST /api/edit-image."""

    prompt: str = Field(min_length=1, description="Requested modification")


class ReplaceTextRequest(ImageRequest):
    """Request body for POST /api/replace-text."""

    original_text: str = Field(min_length=1, description="Text currently in the image")
    new_text: str = Field(min_length=1, description="Replacement text")
    coordinates: Coordinates | None = None
    font_style: FontStyle | None = None
    color_analysis: ColorAnalysis | None = None


class AnalyzeTextRequest(ImageRequest):
    """Request body for POST /api/analyze-text."""

    text_to_analyze: str = Field(min_length=1, description="Text region to analyse")
    coordinates: Coordinates


class BatchImage(CamelModel):
    """One image in a batch detection request."""

    id: str | None = None
    name: str = Field(min_length=1)
    data_url: str = Field(min_length=1)
    format: str | None = None


class BatchDetectRequest(CamelModel):
    """Request body for POST /api/batch-detect-text."""

    images: list[BatchImage] = Field(min_length=1)
    api_key: str | None = None
