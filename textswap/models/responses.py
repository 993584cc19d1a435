"""Response models for the caller-facing HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from textswap.models.requests import CamelModel, Coordinates


class DetectedText(CamelModel):
    """A text region found in an image (positions in percentages)."""

    id: str
    text: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    confidence: float
    model: str | None = None


class DetectTextResponse(CamelModel):
    success: bool = True
    detected_texts: list[DetectedText]
    model: str


class EditedImageResponse(CamelModel):
    """Response for edit-image and replace-text."""

    success: bool = True
    edited_image: str = Field(description="Data URI or URL of the edited image")
    model: str


class AnalyzeTextResponse(CamelModel):
    success: bool = True
    analysis: str
    parsed: dict[str, Any]
    model: str
    coordinates: Coordinates
    is_financial_data: bool


class BatchSummary(CamelModel):
    total: int
    successful: int
    failed: int


class BatchDetectData(CamelModel):
    detected_texts: list[DetectedText]
    model: str


class BatchDetectItem(CamelModel):
    """Outcome for one image of a batch."""

    image_id: str | None = None
    image_name: str
    success: bool
    data: BatchDetectData | None = None
    error: str | None = None


class BatchDetectResponse(CamelModel):
    success: bool = True
    summary: BatchSummary
    results: list[BatchDetectItem]


class HealthResponse(CamelModel):
    status: str = "ok"
    message: str = "API server is running"
    service: str
    version: str
