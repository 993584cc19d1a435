"""Text editing service - the operations behind the HTTP API.

Each operation:
    1. validates the image reference
    2. picks its candidate list (ModelPolicy, optionally narrowed by discovery)
    3. builds a RequestTemplate and runs the FallbackOrchestrator
    4. turns the CanonicalResult into a response model, or raises

Only the aggregate outcome is raised here: MissingCredentialError when no
credential resolved, CandidatesExhaustedError when every candidate failed.
Per-candidate failures stay inside the orchestrator's attempt log.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from textswap.core.config import Settings
from textswap.core.constants import (
    ANALYZE_TEXT_MAX_TOKENS,
    ANALYZE_TEXT_TEMPERATURE,
    DEFAULT_DETECTION_CONFIDENCE,
    DETECT_TEXT_MAX_TOKENS,
    DETECT_TEXT_TEMPERATURE,
    EDIT_IMAGE_MAX_TOKENS,
    EDIT_IMAGE_TEMPERATURE,
    REPLACE_TEXT_MAX_TOKENS,
    REPLACE_TEXT_TEMPERATURE,
)
from textswap.core.exceptions import CandidatesExhaustedError, MissingCredentialError
from textswap.core.logging import get_logger
from textswap.core.text_processing import is_financial_text, parse_typography_analysis
from textswap.models.requests import (
    AnalyzeTextRequest,
    BatchImage,
    ColorAnalysis,
    Coordinates,
    FontStyle,
)
from textswap.models.responses import (
    AnalyzeTextResponse,
    BatchDetectData,
    BatchDetectItem,
    BatchDetectResponse,
    BatchSummary,
    DetectedText,
    DetectTextResponse,
    EditedImageResponse,
)
from textswap.orchestration.batch import BatchRunner
from textswap.orchestration.extractors import (
    ANALYSIS_EXTRACTOR,
    IMAGE_EXTRACTOR,
    TEXT_REGIONS_EXTRACTOR,
)
from textswap.orchestration.models import (
    BatchJob,
    CanonicalResult,
    FailureReason,
    RequestTemplate,
)
from textswap.orchestration.orchestrator import FallbackOrchestrator
from textswap.orchestration.policies import (
    ANALYZE_TEXT,
    DETECT_TEXT,
    EDIT_IMAGE,
    REPLACE_TEXT,
    ModelPolicy,
    policies_from_settings,
)
from textswap.services import prompts
from textswap.services.images import ensure_image_reference

logger = get_logger(__name__)

# Caller-facing message per operation when every candidate fails
EXHAUSTED_MESSAGES: dict[str, str] = {
    DETECT_TEXT: "All models failed to detect text",
    EDIT_IMAGE: "All models failed to edit image",
    REPLACE_TEXT: "All models failed to replace text",
    ANALYZE_TEXT: "All models failed to analyze text",
}


def _number(value: Any, default: float = 0.0) -> float:
    """Coerce a model-supplied coordinate; anything non-finite becomes default."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def normalize_detected_texts(items: Sequence[Any], model: str) -> list[DetectedText]:
    """Turn a parsed JSON array from a detection model into DetectedText items.

    Non-object entries are skipped. Ids are ``text-<index>`` using the index
    in the original array; a missing or zero confidence becomes the default.
    """
    detected: list[DetectedText] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        confidence = _number(item.get("confidence"))
        detected.append(
            DetectedText(
                id=f"text-{index}",
                text="" if text is None else str(text),
                x=_number(item.get("x")),
                y=_number(item.get("y")),
                width=_number(item.get("width")),
                height=_number(item.get("height")),
                confidence=confidence or DEFAULT_DETECTION_CONFIDENCE,
                model=model,
            )
        )
    return detected


class TextEditingService:
    """Runs the image/text operations through the fallback orchestrator.

    Args:
        orchestrator: Fallback orchestrator (its transport also serves
            model discovery).
        batch_runner: Runner used for batch detection.
        settings: Application settings (policies, modalities, discovery).
        policies: Optional explicit policies; built from settings otherwise.
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        batch_runner: BatchRunner,
        settings: Settings,
        policies: Mapping[str, ModelPolicy] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._batch_runner = batch_runner
        self._settings = settings
        self._policies = dict(policies) if policies is not None else policies_from_settings(settings)

    @property
    def policies(self) -> dict[str, ModelPolicy]:
        return dict(self._policies)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def candidates_for(self, operation: str, api_key: str) -> tuple[str, ...]:
        """Candidate list for one run of an operation.

        With discovery enabled the policy is narrowed to the models the
        upstream lists right now; otherwise it is used as configured.
        """
        policy = self._policies[operation]
        if not self._settings.discover_models:
            return policy.candidates

        available = await self._orchestrator.transport.list_models(api_key)
        narrowed = policy.narrowed(available)
        logger.debug(
            "Model policy narrowed",
            operation=operation,
            configured=len(policy),
            available=len(available),
            candidates=list(narrowed.candidates),
        )
        return narrowed.candidates

    @property
    def _image_modalities(self) -> tuple[str, ...] | None:
        return tuple(self._settings.image_modalities) or None

    @staticmethod
    def _require_key(api_key: str | None) -> str:
        if not api_key:
            raise MissingCredentialError()
        return api_key

    @staticmethod
    def _raise_for_failure(result: CanonicalResult, operation: str) -> None:
        if result.ok:
            return
        if result.reason is FailureReason.MISSING_CREDENTIAL:
            raise MissingCredentialError()
        raise CandidatesExhaustedError(
            EXHAUSTED_MESSAGES[operation],
            operation=operation,
            tried=result.tried,
        )

    async def _run(
        self,
        operation: str,
        template: RequestTemplate,
        extract: Any,
        api_key: str | None,
    ) -> CanonicalResult:
        key = self._require_key(api_key)
        candidates = await self.candidates_for(operation, key)
        result = await self._orchestrator.run(candidates, template, extract, key)
        self._raise_for_failure(result, operation)
        return result

    def _detect_template(self, image: str) -> RequestTemplate:
        return RequestTemplate(
            instruction=prompts.detect_text_instruction(),
            image=image,
            max_tokens=DETECT_TEXT_MAX_TOKENS,
            temperature=DETECT_TEXT_TEMPERATURE,
        )

    # =========================================================================
    # Operations
    # =========================================================================

    async def detect_text(self, image_data_url: str, api_key: str | None) -> DetectTextResponse:
        """Detect text regions in an image.

        Raises:
            ValidationError: Image reference is not a data URI or URL.
            MissingCredentialError: No credential resolved.
            CandidatesExhaustedError: No candidate returned a JSON array.
        """
        image = ensure_image_reference(image_data_url)
        result = await self._run(
            DETECT_TEXT, self._detect_template(image), TEXT_REGIONS_EXTRACTOR, api_key
        )
        model = result.source_model or ""
        return DetectTextResponse(
            detected_texts=normalize_detected_texts(result.payload, model),
            model=model,
        )

    async def edit_image(
        self, image_data_url: str, prompt: str, api_key: str | None
    ) -> EditedImageResponse:
        """Apply a free-form modification to an image."""
        image = ensure_image_reference(image_data_url)
        template = RequestTemplate(
            instruction=prompts.edit_image_instruction(prompt),
            image=image,
            max_tokens=EDIT_IMAGE_MAX_TOKENS,
            temperature=EDIT_IMAGE_TEMPERATURE,
            modalities=self._image_modalities,
        )
        result = await self._run(EDIT_IMAGE, template, IMAGE_EXTRACTOR, api_key)
        return EditedImageResponse(edited_image=result.payload, model=result.source_model or "")

    async def replace_text(
        self,
        image_data_url: str,
        original_text: str,
        new_text: str,
        api_key: str | None,
        coordinates: Coordinates | None = None,
        font_style: FontStyle | None = None,
        color_analysis: ColorAnalysis | None = None,
    ) -> EditedImageResponse:
        """Replace one piece of text in an image, keeping its style."""
        image = ensure_image_reference(image_data_url)
        template = RequestTemplate(
            instruction=prompts.replace_text_instruction(
                original_text,
                new_text,
                coordinates=coordinates.model_dump() if coordinates else None,
                font_style=font_style.model_dump(by_alias=True) if font_style else None,
                color_analysis=(
                    color_analysis.model_dump(by_alias=True) if color_analysis else None
                ),
            ),
            image=image,
            max_tokens=REPLACE_TEXT_MAX_TOKENS,
            temperature=REPLACE_TEXT_TEMPERATURE,
            modalities=self._image_modalities,
        )
        result = await self._run(REPLACE_TEXT, template, IMAGE_EXTRACTOR, api_key)
        return EditedImageResponse(edited_image=result.payload, model=result.source_model or "")

    async def analyze_text(
        self, request: AnalyzeTextRequest, api_key: str | None
    ) -> AnalyzeTextResponse:
        """Produce a typography report for one text region."""
        image = ensure_image_reference(request.image_data_url)
        financial = is_financial_text(request.text_to_analyze)
        template = RequestTemplate(
            instruction=prompts.analyze_text_instruction(request.text_to_analyze, financial),
            image=image,
            max_tokens=ANALYZE_TEXT_MAX_TOKENS,
            temperature=ANALYZE_TEXT_TEMPERATURE,
        )
        result = await self._run(ANALYZE_TEXT, template, ANALYSIS_EXTRACTOR, api_key)
        return AnalyzeTextResponse(
            analysis=result.payload,
            parsed=parse_typography_analysis(result.payload),
            model=result.source_model or "",
            coordinates=request.coordinates,
            is_financial_data=financial,
        )

    async def batch_detect_text(
        self, images: Sequence[BatchImage], api_key: str | None
    ) -> BatchDetectResponse:
        """Detect text in several images, a bounded number at a time.

        Per-image failures are reported in the results; only a missing
        credential or an invalid image reference fails the whole batch.
        """
        key = self._require_key(api_key)
        for position, image in enumerate(images):
            ensure_image_reference(image.data_url, field=f"images[{position}].dataUrl")

        candidates = await self.candidates_for(DETECT_TEXT, key)
        jobs = [
            BatchJob(
                name=image.name,
                job_id=image.id,
                candidates=candidates,
                template=self._detect_template(image.data_url),
                extract=TEXT_REGIONS_EXTRACTOR,
            )
            for image in images
        ]

        items: list[BatchDetectItem] = []
        for item in await self._batch_runner.run_batch(jobs, key):
            result = item.result
            if result.ok:
                model = result.source_model or ""
                items.append(
                    BatchDetectItem(
                        image_id=item.job.job_id,
                        image_name=item.job.name,
                        success=True,
                        data=BatchDetectData(
                            detected_texts=normalize_detected_texts(result.payload, model),
                            model=model,
                        ),
                    )
                )
            else:
                items.append(
                    BatchDetectItem(
                        image_id=item.job.job_id,
                        image_name=item.job.name,
                        success=False,
                        error=(
                            result.detail
                            if result.reason is FailureReason.JOB_ERROR
                            else EXHAUSTED_MESSAGES[DETECT_TEXT]
                        ),
                    )
                )

        successful = sum(1 for entry in items if entry.success)
        return BatchDetectResponse(
            summary=BatchSummary(
                total=len(items),
                successful=successful,
                failed=len(items) - successful,
            ),
            results=items,
        )
