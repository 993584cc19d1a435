"""Fallback orchestrator - ordered model candidates, first success wins.

Flow:
    candidates[0] → upstream → extract ─ payload ──────────────→ success
         │ transport error / no match
         ▼
    candidates[1] → upstream → extract ─ payload ──────────────→ success
         │ ...
         ▼
    exhausted ─────────────────────────────────────────────────→ failure

Attempts are strictly sequential: only one answer is needed and upstream
calls are slow and billed, so there is no speculative parallelism. Each
candidate gets exactly one call, with no retries and no backoff.

Every per-candidate failure is soft. It is recorded as an AttemptRecord,
logged, traced, and the next candidate is tried, including unexpected
exceptions from the transport. run() itself never raises for a candidate
failure; it always returns a CanonicalResult.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from textswap.core.logging import get_logger
from textswap.observability.tracing import attempt_span, record_attempt
from textswap.orchestration.models import (
    AttemptOutcome,
    AttemptRecord,
    CanonicalResult,
    Extractor,
    FailureReason,
    RequestTemplate,
)
from textswap.providers.base import ChatCompletionTransport, UpstreamTransportError

logger = get_logger(__name__)

# Longest body excerpt kept in an attempt record
DETAIL_CHARS = 300


def _clip(text: str | None) -> str | None:
    if text is None:
        return None
    return text if len(text) <= DETAIL_CHARS else text[:DETAIL_CHARS] + "..."


class FallbackOrchestrator:
    """Tries model candidates in order against one upstream until one succeeds.

    Attributes:
        transport: Upstream transport used for every attempt.

    Example:
        orchestrator = FallbackOrchestrator(transport=OpenRouterTransport())
        result = await orchestrator.run(
            candidates=("openai/gpt-4o", "google/gemini-2.5-flash"),
            template=RequestTemplate(instruction="...", image=data_url),
            extract=TEXT_REGIONS_EXTRACTOR,
            api_key=api_key,
        )
        if result.ok:
            print(result.source_model, result.payload)
    """

    def __init__(self, transport: ChatCompletionTransport) -> None:
        self._transport = transport

    @property
    def transport(self) -> ChatCompletionTransport:
        """Get the upstream transport."""
        return self._transport

    async def run(
        self,
        candidates: Sequence[str],
        template: RequestTemplate,
        extract: Extractor,
        api_key: str | None,
    ) -> CanonicalResult:
        """Run the candidates in order until one yields a payload.

        Args:
            candidates: Ordered model ids (copied to a tuple for the run).
            template: Request template; only the model id varies.
            extract: Maps a parsed response body to a payload or None.
            api_key: Resolved bearer credential.

        Returns:
            Success with the first payload and its model, or a failure with
            reason missing_credential (no call made) or candidates_exhausted.
        """
        if not api_key:
            logger.warning("No upstream credential; skipping all candidates")
            return CanonicalResult.failed(FailureReason.MISSING_CREDENTIAL)

        run_candidates = tuple(candidates)
        attempts: list[AttemptRecord] = []

        for position, candidate in enumerate(run_candidates):
            record, payload = await self._attempt(
                candidate, position, template, extract, api_key
            )
            attempts.append(record)
            if payload is not None:
                logger.info(
                    "Candidate succeeded",
                    model=candidate,
                    attempts=len(attempts),
                )
                return CanonicalResult.succeeded(
                    payload, candidate, attempts=tuple(attempts)
                )

        logger.warning(
            "All candidates exhausted",
            tried=[a.candidate for a in attempts],
            outcomes=[a.outcome.value for a in attempts],
        )
        return CanonicalResult.failed(
            FailureReason.CANDIDATES_EXHAUSTED,
            detail="all candidates exhausted",
            attempts=tuple(attempts),
        )

    async def _attempt(
        self,
        candidate: str,
        position: int,
        template: RequestTemplate,
        extract: Extractor,
        api_key: str,
    ) -> tuple[AttemptRecord, object | None]:
        """Make one call for one candidate and classify the outcome."""
        payload_body = template.build_payload(candidate)
        start = time.perf_counter()

        with attempt_span(candidate, position) as span:
            try:
                response = await self._transport.complete(payload_body, api_key)
            except UpstreamTransportError as e:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.warning(
                    "Candidate failed",
                    model=candidate,
                    reason=e.reason,
                    status_code=e.status_code,
                    body=e.body,
                    elapsed_ms=round(elapsed_ms, 1),
                )
                record = AttemptRecord(
                    candidate=candidate,
                    outcome=AttemptOutcome.TRANSPORT_ERROR,
                    status_code=e.status_code,
                    detail=_clip(e.body or e.reason),
                    elapsed_ms=elapsed_ms,
                )
                record_attempt(span, record.outcome.value, e.status_code, elapsed_ms)
                return record, None
            except Exception as e:  # noqa: BLE001 - run() never raises for a candidate
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.exception(
                    "Transport raised unexpectedly",
                    model=candidate,
                    error_type=type(e).__name__,
                    elapsed_ms=round(elapsed_ms, 1),
                )
                record = AttemptRecord(
                    candidate=candidate,
                    outcome=AttemptOutcome.TRANSPORT_ERROR,
                    detail=_clip(f"{type(e).__name__}: {e}"),
                    elapsed_ms=elapsed_ms,
                )
                record_attempt(span, record.outcome.value, elapsed_ms=elapsed_ms)
                return record, None

            try:
                payload = extract(response.body)
            except Exception as e:  # noqa: BLE001 - a faulty extractor is a soft failure
                logger.warning("Extractor raised", model=candidate, error=str(e))
                payload = None

            elapsed_ms = (time.perf_counter() - start) * 1000

            if payload is None:
                logger.info(
                    "Candidate returned no usable payload",
                    model=candidate,
                    status_code=response.status_code,
                    body=_clip(response.text),
                    elapsed_ms=round(elapsed_ms, 1),
                )
                record = AttemptRecord(
                    candidate=candidate,
                    outcome=AttemptOutcome.NO_MATCH,
                    status_code=response.status_code,
                    detail=_clip(response.text),
                    elapsed_ms=elapsed_ms,
                )
            else:
                record = AttemptRecord(
                    candidate=candidate,
                    outcome=AttemptOutcome.SUCCESS,
                    status_code=response.status_code,
                    elapsed_ms=elapsed_ms,
                )
            record_attempt(span, record.outcome.value, response.status_code, elapsed_ms)
            return record, payload
