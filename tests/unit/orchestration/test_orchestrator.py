"""Unit tests for FallbackOrchestrator.

Tests cover:
- first success wins, later candidates never called
- k failing candidates then a success: exactly k+1 calls
- exhaustion: exactly len(candidates) calls, one uniform failure
- missing credential: no call at all
- empty / non-JSON / unextractable bodies are soft failures
- a raising extractor is a soft failure
- the attempt log records every outcome in order
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from conftest import (
    MODEL_A,
    MODEL_B,
    MODEL_C,
    TEST_API_KEY,
    TEST_IMAGE_URL,
    StubTransport,
    chat_body,
    http_error,
    image_url_body,
)
from textswap.orchestration.extractors import IMAGE_EXTRACTOR, TEXT_REGIONS_EXTRACTOR
from textswap.orchestration.models import (
    AttemptOutcome,
    FailureReason,
    RequestTemplate,
)
from textswap.orchestration.orchestrator import FallbackOrchestrator
from textswap.providers.base import UpstreamResponse, UpstreamTransportError
from textswap.providers.openrouter import OpenRouterTransport


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def template() -> RequestTemplate:
    return RequestTemplate(
        instruction="Replace the text",
        image="data:image/png;base64,AAAA",
        max_tokens=1000,
        temperature=0.3,
    )


def _orchestrator(script: dict[str, Any]) -> tuple[FallbackOrchestrator, StubTransport]:
    transport = StubTransport(script)
    return FallbackOrchestrator(transport), transport


# =============================================================================
# First Success Wins
# =============================================================================


class TestFirstSuccessWins:
    """The first candidate with an extractable body ends the run."""

    async def test_first_candidate_success_skips_the_rest(
        self, template: RequestTemplate
    ) -> None:
        orchestrator, transport = _orchestrator(
            {MODEL_A: image_url_body(TEST_IMAGE_URL), MODEL_B: image_url_body("http://other")}
        )

        result = await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.ok is True
        assert result.payload == TEST_IMAGE_URL
        assert result.source_model == MODEL_A
        assert transport.called_models == [MODEL_A]

    @pytest.mark.parametrize("k", [0, 1, 2, 3])
    async def test_success_after_k_failures_makes_k_plus_one_calls(
        self, template: RequestTemplate, k: int
    ) -> None:
        candidates = [f"m{i}" for i in range(k + 2)]
        script: dict[str, Any] = {f"m{i}": http_error(500) for i in range(k)}
        script[f"m{k}"] = image_url_body(TEST_IMAGE_URL)
        script[f"m{k + 1}"] = image_url_body("http://never")
        orchestrator, transport = _orchestrator(script)

        result = await orchestrator.run(candidates, template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.ok is True
        assert result.source_model == f"m{k}"
        assert len(transport.calls) == k + 1

    async def test_a_500_then_b_image_url(self, template: RequestTemplate) -> None:
        """A returns HTTP 500, B returns a tagged image_url part."""
        orchestrator, _ = _orchestrator(
            {MODEL_A: http_error(500), MODEL_B: image_url_body(TEST_IMAGE_URL)}
        )

        result = await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.ok is True
        assert result.payload == TEST_IMAGE_URL
        assert result.source_model == MODEL_B
        assert result.reason is None

    async def test_only_model_field_differs_between_candidates(
        self, template: RequestTemplate
    ) -> None:
        orchestrator, transport = _orchestrator({MODEL_A: http_error(502), MODEL_B: http_error(503)})

        await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        first, second = transport.calls
        assert {**first, "model": None} == {**second, "model": None}
        assert first["max_tokens"] == 1000
        assert first["temperature"] == 0.3

    async def test_credential_is_passed_to_transport(self, template: RequestTemplate) -> None:
        orchestrator, transport = _orchestrator({MODEL_A: image_url_body(TEST_IMAGE_URL)})

        await orchestrator.run([MODEL_A], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert transport.api_keys == [TEST_API_KEY]


# =============================================================================
# Exhaustion and Soft Failures
# =============================================================================


class TestExhaustion:
    """Every failure kind advances; total failure is reported once."""

    async def test_all_failures_make_len_candidates_calls(
        self, template: RequestTemplate
    ) -> None:
        orchestrator, transport = _orchestrator(
            {
                MODEL_A: http_error(500),
                MODEL_B: chat_body("no image here"),
                MODEL_C: UpstreamTransportError("timed out after 45.0s"),
            }
        )

        result = await orchestrator.run(
            [MODEL_A, MODEL_B, MODEL_C], template, IMAGE_EXTRACTOR, TEST_API_KEY
        )

        assert result.ok is False
        assert result.reason is FailureReason.CANDIDATES_EXHAUSTED
        assert result.detail == "all candidates exhausted"
        assert result.payload is None
        assert result.source_model is None
        assert transport.called_models == [MODEL_A, MODEL_B, MODEL_C]

    async def test_text_without_image_is_failure(self, template: RequestTemplate) -> None:
        orchestrator, _ = _orchestrator({MODEL_A: chat_body("no image here")})

        result = await orchestrator.run([MODEL_A], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.ok is False
        assert result.attempts[0].outcome is AttemptOutcome.NO_MATCH

    async def test_empty_body_is_soft_failure(self, template: RequestTemplate) -> None:
        orchestrator, transport = _orchestrator(
            {
                MODEL_A: UpstreamResponse(status_code=200, body=None, text=""),
                MODEL_B: image_url_body(TEST_IMAGE_URL),
            }
        )

        result = await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.source_model == MODEL_B
        assert len(transport.calls) == 2

    async def test_raising_extractor_is_soft_failure(self, template: RequestTemplate) -> None:
        def broken(_body: Any) -> Any:
            raise KeyError("choices")

        orchestrator, transport = _orchestrator(
            {MODEL_A: chat_body("x"), MODEL_B: chat_body("y")}
        )

        result = await orchestrator.run([MODEL_A, MODEL_B], template, broken, TEST_API_KEY)

        assert result.ok is False
        assert len(transport.calls) == 2
        assert [a.outcome for a in result.attempts] == [AttemptOutcome.NO_MATCH] * 2

    async def test_unexpected_transport_exception_is_soft_failure(
        self, template: RequestTemplate
    ) -> None:
        orchestrator, transport = _orchestrator(
            {MODEL_A: RuntimeError("connection pool broken"), MODEL_B: image_url_body(TEST_IMAGE_URL)}
        )

        result = await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.ok is True
        assert result.source_model == MODEL_B
        assert result.attempts[0].outcome is AttemptOutcome.TRANSPORT_ERROR
        assert result.attempts[0].status_code is None
        assert result.attempts[0].detail == "RuntimeError: connection pool broken"
        assert transport.called_models == [MODEL_A, MODEL_B]

    async def test_non_ascii_credential_over_real_transport(
        self, template: RequestTemplate
    ) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda _r: httpx.Response(200, json=image_url_body(TEST_IMAGE_URL))
            )
        )
        orchestrator = FallbackOrchestrator(OpenRouterTransport(client=client))

        result = await orchestrator.run([MODEL_A, MODEL_B], template, IMAGE_EXTRACTOR, "sk-ключ")

        assert result.ok is False
        assert result.reason is FailureReason.CANDIDATES_EXHAUSTED
        assert [a.outcome for a in result.attempts] == [AttemptOutcome.TRANSPORT_ERROR] * 2

    async def test_empty_candidate_list_is_exhausted(self, template: RequestTemplate) -> None:
        orchestrator, transport = _orchestrator({})

        result = await orchestrator.run([], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        assert result.reason is FailureReason.CANDIDATES_EXHAUSTED
        assert result.attempts == ()
        assert transport.calls == []


class TestMissingCredential:
    """No credential: fail fast without calling any candidate."""

    @pytest.mark.parametrize("api_key", [None, ""])
    async def test_no_calls_without_credential(
        self, template: RequestTemplate, api_key: str | None
    ) -> None:
        orchestrator, transport = _orchestrator({MODEL_A: image_url_body(TEST_IMAGE_URL)})

        result = await orchestrator.run([MODEL_A], template, IMAGE_EXTRACTOR, api_key)

        assert result.ok is False
        assert result.reason is FailureReason.MISSING_CREDENTIAL
        assert transport.calls == []


# =============================================================================
# Attempt Log
# =============================================================================


class TestAttemptLog:
    """Each attempt is recorded with its outcome, in order."""

    async def test_attempts_record_outcomes_and_status(self, template: RequestTemplate) -> None:
        orchestrator, _ = _orchestrator(
            {
                MODEL_A: http_error(429, "rate limited"),
                MODEL_B: chat_body("sorry"),
                MODEL_C: chat_body('[{"text": "Hi"}]'),
            }
        )

        result = await orchestrator.run(
            [MODEL_A, MODEL_B, MODEL_C], template, TEXT_REGIONS_EXTRACTOR, TEST_API_KEY
        )

        assert result.ok is True
        assert result.payload == [{"text": "Hi"}]
        assert result.tried == [MODEL_A, MODEL_B, MODEL_C]
        a, b, c = result.attempts
        assert (a.outcome, a.status_code, a.detail) == (
            AttemptOutcome.TRANSPORT_ERROR,
            429,
            "rate limited",
        )
        assert (b.outcome, b.status_code) == (AttemptOutcome.NO_MATCH, 200)
        assert (c.outcome, c.status_code) == (AttemptOutcome.SUCCESS, 200)
        assert all(attempt.elapsed_ms >= 0 for attempt in result.attempts)

    async def test_network_error_has_no_status(self, template: RequestTemplate) -> None:
        orchestrator, _ = _orchestrator({MODEL_A: UpstreamTransportError("ConnectError: refused")})

        result = await orchestrator.run([MODEL_A], template, IMAGE_EXTRACTOR, TEST_API_KEY)

        attempt = result.attempts[0]
        assert attempt.status_code is None
        assert attempt.detail == "ConnectError: refused"

    async def test_empty_json_array_counts_as_success(self, template: RequestTemplate) -> None:
        orchestrator, _ = _orchestrator({MODEL_A: chat_body("[]")})

        result = await orchestrator.run([MODEL_A], template, TEXT_REGIONS_EXTRACTOR, TEST_API_KEY)

        assert result.ok is True
        assert result.payload == []
