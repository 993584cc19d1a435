"""Unit tests for BatchRunner.

Tests cover:
- 7 jobs with concurrency_limit=3 run as groups of {3, 3, 1}
- results keep input order regardless of completion order
- a job that raises is isolated to its own result
- concurrency_limit validation
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from conftest import MODEL_A, TEST_API_KEY, TEST_IMAGE_URL, StubTransport, image_url_body
from textswap.orchestration.batch import BatchRunner
from textswap.orchestration.extractors import IMAGE_EXTRACTOR
from textswap.orchestration.models import (
    BatchJob,
    CanonicalResult,
    Extractor,
    FailureReason,
    RequestTemplate,
)
from textswap.orchestration.orchestrator import FallbackOrchestrator

BOOM_JOB = "boom"


# =============================================================================
# Fake Orchestrator
# =============================================================================


class RecordingOrchestrator:
    """Tracks how many jobs run at once and when each one started."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self.completed = 0
        self.completed_at_start: dict[str, int] = {}

    async def run(
        self,
        candidates: Sequence[str],
        template: RequestTemplate,
        extract: Extractor,
        api_key: str | None,
    ) -> CanonicalResult:
        name = template.instruction
        self.completed_at_start[name] = self.completed
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            # Later jobs in a group finish first
            index = int(name.removeprefix("job-")) if name.startswith("job-") else 0
            await asyncio.sleep(0.001 * (3 - index % 3))
            if name == BOOM_JOB:
                raise RuntimeError("stub exploded")
            return CanonicalResult.succeeded(name, candidates[0])
        finally:
            self.active -= 1
            self.completed += 1


def _job(name: str) -> BatchJob:
    return BatchJob(
        name=name,
        candidates=(MODEL_A,),
        template=RequestTemplate(instruction=name, image=TEST_IMAGE_URL),
        extract=IMAGE_EXTRACTOR,
        job_id=f"id-{name}",
    )


# =============================================================================
# Grouping
# =============================================================================


class TestGrouping:
    """Jobs run in consecutive fixed-size groups."""

    async def test_seven_jobs_limit_three_runs_three_three_one(self) -> None:
        orchestrator = RecordingOrchestrator()
        runner = BatchRunner(orchestrator, concurrency_limit=3)
        jobs = [_job(f"job-{i}") for i in range(7)]

        await runner.run_batch(jobs, TEST_API_KEY)

        starts = [orchestrator.completed_at_start[f"job-{i}"] for i in range(7)]
        assert starts == [0, 0, 0, 3, 3, 3, 6]
        assert orchestrator.max_active == 3

    async def test_results_follow_input_order(self) -> None:
        runner = BatchRunner(RecordingOrchestrator(), concurrency_limit=3)
        jobs = [_job(f"job-{i}") for i in range(7)]

        results = await runner.run_batch(jobs, TEST_API_KEY)

        assert [item.job.name for item in results] == [job.name for job in jobs]
        assert [item.result.payload for item in results] == [job.name for job in jobs]

    async def test_call_limit_overrides_default(self) -> None:
        orchestrator = RecordingOrchestrator()
        runner = BatchRunner(orchestrator, concurrency_limit=3)

        await runner.run_batch([_job(f"job-{i}") for i in range(4)], TEST_API_KEY, concurrency_limit=1)

        assert orchestrator.max_active == 1

    async def test_empty_batch(self) -> None:
        runner = BatchRunner(RecordingOrchestrator())

        assert await runner.run_batch([], TEST_API_KEY) == []


# =============================================================================
# Isolation
# =============================================================================


class TestIsolation:
    """One job raising never hides its siblings' outcomes."""

    async def test_raising_job_becomes_job_error(self) -> None:
        runner = BatchRunner(RecordingOrchestrator(), concurrency_limit=3)
        jobs = [_job("job-0"), _job(BOOM_JOB), _job("job-2"), _job("job-3")]

        results = await runner.run_batch(jobs, TEST_API_KEY)

        assert [item.result.ok for item in results] == [True, False, True, True]
        failed = results[1].result
        assert failed.reason is FailureReason.JOB_ERROR
        assert failed.detail == "stub exploded"
        assert results[1].job.job_id == f"id-{BOOM_JOB}"

    async def test_jobs_use_real_orchestrator_independently(self) -> None:
        transport = StubTransport({MODEL_A: image_url_body(TEST_IMAGE_URL)})
        runner = BatchRunner(FallbackOrchestrator(transport), concurrency_limit=2)
        jobs = [
            _job("job-0"),
            BatchJob(
                name="job-1",
                candidates=("missing",),
                template=RequestTemplate(instruction="job-1", image=TEST_IMAGE_URL),
                extract=IMAGE_EXTRACTOR,
            ),
            _job("job-2"),
        ]

        results = await runner.run_batch(jobs, TEST_API_KEY)

        assert [item.result.ok for item in results] == [True, False, True]
        assert results[1].result.reason is FailureReason.CANDIDATES_EXHAUSTED
        assert len(transport.calls) == 3


class TestValidation:
    """concurrency_limit must be at least 1."""

    def test_constructor_rejects_zero(self) -> None:
        with pytest.raises(ValueError, match="concurrency_limit"):
            BatchRunner(RecordingOrchestrator(), concurrency_limit=0)

    async def test_run_batch_rejects_zero(self) -> None:
        runner = BatchRunner(RecordingOrchestrator())

        with pytest.raises(ValueError, match="concurrency_limit"):
            await runner.run_batch([_job("job-0")], TEST_API_KEY, concurrency_limit=0)
