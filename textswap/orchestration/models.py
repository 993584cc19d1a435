"""Value types for fallback orchestration.

Patterns applied:
- Frozen dataclasses: a template, result or job never changes after
  construction, so concurrent batch jobs share nothing mutable
- tuple (not list) for candidate lists and attempt logs
- Invariant checks in __post_init__ rather than at call sites
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from textswap.services.images import encode_image_bytes


# A function from a parsed upstream body to a payload, or None for "no match"
Extractor = Callable[[Any], Any]


# =============================================================================
# Enums
# =============================================================================


class AttemptOutcome(str, Enum):
    """How a single candidate attempt ended."""

    SUCCESS = "success"
    TRANSPORT_ERROR = "transport_error"
    NO_MATCH = "no_match"


class FailureReason(str, Enum):
    """Why a run produced no payload."""

    MISSING_CREDENTIAL = "missing_credential"
    CANDIDATES_EXHAUSTED = "candidates_exhausted"
    JOB_ERROR = "job_error"


# =============================================================================
# Request Template
# =============================================================================


@dataclass(frozen=True)
class RequestTemplate:
    """Immutable description of the upstream call made for every candidate.

    Only the model id differs between candidates of one run.

    Attributes:
        instruction: User-turn text sent alongside the image.
        image: Image as a data URI / URL string, or raw encoded bytes
            (converted to a data URI on construction).
        max_tokens: Upper bound on generated tokens.
        temperature: Sampling temperature.
        system_instruction: Optional system-turn text.
        modalities: Optional output modalities (e.g. ("image", "text")).
    """

    instruction: str
    image: str | bytes
    max_tokens: int = 1000
    temperature: float = 0.7
    system_instruction: str | None = None
    modalities: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        # Raw bytes are encoded once here; invalid image data fails at construction
        if isinstance(self.image, bytes):
            object.__setattr__(self, "image", encode_image_bytes(self.image))

    @property
    def image_url(self) -> str:
        """The image as a URL or data URI."""
        return str(self.image)

    def build_payload(self, model: str) -> dict[str, Any]:
        """Build the chat-completions request body for one candidate.

        Args:
            model: Candidate model id substituted into the template.

        Returns:
            JSON-serialisable request body.
        """
        messages: list[dict[str, Any]] = []
        if self.system_instruction:
            messages.append({"role": "system", "content": self.system_instruction})
        messages.append(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.instruction},
                    {"type": "image_url", "image_url": {"url": self.image_url}},
                ],
            }
        )

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.modalities:
            payload["modalities"] = list(self.modalities)
        return payload


# =============================================================================
# Attempt Log and Canonical Result
# =============================================================================


@dataclass(frozen=True)
class AttemptRecord:
    """Outcome of one candidate attempt.

    Attributes:
        candidate: Model id that was tried.
        outcome: success, transport_error or no_match.
        status_code: HTTP status, when a response was received.
        detail: Short failure description (error text or body excerpt).
        elapsed_ms: Wall time of the attempt.
    """

    candidate: str
    outcome: AttemptOutcome
    status_code: int | None = None
    detail: str | None = None
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class CanonicalResult:
    """Normalized outcome of one orchestration run.

    Exactly one of two shapes:
    - ok=True with payload and source_model set, reason None
    - ok=False with reason set, payload and source_model None

    Use succeeded() / failed() rather than the constructor.
    """

    ok: bool
    payload: Any = None
    source_model: str | None = None
    reason: FailureReason | None = None
    detail: str | None = None
    attempts: tuple[AttemptRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.ok:
            if self.payload is None or self.source_model is None:
                raise ValueError("successful result requires payload and source_model")
            if self.reason is not None:
                raise ValueError("successful result cannot carry a failure reason")
        else:
            if self.reason is None:
                raise ValueError("failed result requires a reason")
            if self.payload is not None or self.source_model is not None:
                raise ValueError("failed result cannot carry payload or source_model")

    @classmethod
    def succeeded(
        cls,
        payload: Any,
        source_model: str,
        attempts: tuple[AttemptRecord, ...] = (),
    ) -> CanonicalResult:
        return cls(ok=True, payload=payload, source_model=source_model, attempts=attempts)

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        detail: str | None = None,
        attempts: tuple[AttemptRecord, ...] = (),
    ) -> CanonicalResult:
        return cls(ok=False, reason=reason, detail=detail, attempts=attempts)

    @property
    def tried(self) -> list[str]:
        """Candidates attempted during the run, in order."""
        return [attempt.candidate for attempt in self.attempts]


# =============================================================================
# Batch Types
# =============================================================================


@dataclass(frozen=True)
class BatchJob:
    """One independently orchestrated unit of work in a batch.

    Attributes:
        name: Display name (usually the image file name).
        candidates: Ordered model ids for this job.
        template: Request template for this job.
        extract: Payload extractor for this job.
        job_id: Optional caller-supplied identifier.
    """

    name: str
    candidates: tuple[str, ...]
    template: RequestTemplate
    extract: Extractor
    job_id: str | None = None


@dataclass(frozen=True)
class BatchItemResult:
    """A batch job paired with its result."""

    job: BatchJob
    result: CanonicalResult
