"""Batch runner - independent orchestration runs in fixed-size groups.

Flow (concurrency_limit=3, 7 jobs):
    [job0, job1, job2] → gather → [job3, job4, job5] → gather → [job6] → gather

Within a group every job runs concurrently; the next group starts only once
the whole group has settled. This caps simultaneous upstream load at the
group size. It is deliberately not a sliding-window scheduler.

A job that raises becomes a failed result for that job alone; its siblings
in the same and later groups still report. Results are returned in input
order, not completion order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

from textswap.core.constants import DEFAULT_BATCH_CONCURRENCY
from textswap.core.logging import get_logger
from textswap.orchestration.models import (
    BatchItemResult,
    BatchJob,
    CanonicalResult,
    Extractor,
    FailureReason,
    RequestTemplate,
)

logger = get_logger(__name__)


class Orchestrates(Protocol):
    """Anything with FallbackOrchestrator.run()'s signature."""

    async def run(
        self,
        candidates: Sequence[str],
        template: RequestTemplate,
        extract: Extractor,
        api_key: str | None,
    ) -> CanonicalResult: ...


class BatchRunner:
    """Runs BatchJobs through an orchestrator with bounded concurrency.

    Args:
        orchestrator: Runs one job (normally a FallbackOrchestrator).
        concurrency_limit: Default group size (must be >= 1).

    Example:
        runner = BatchRunner(orchestrator, concurrency_limit=3)
        results = await runner.run_batch(jobs, api_key=key)
        for item in results:
            print(item.job.name, item.result.ok)
    """

    def __init__(
        self,
        orchestrator: Orchestrates,
        concurrency_limit: int = DEFAULT_BATCH_CONCURRENCY,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")
        self._orchestrator = orchestrator
        self._concurrency_limit = concurrency_limit

    @property
    def concurrency_limit(self) -> int:
        """Default number of jobs run concurrently per group."""
        return self._concurrency_limit

    async def run_batch(
        self,
        jobs: Sequence[BatchJob],
        api_key: str | None,
        concurrency_limit: int | None = None,
    ) -> list[BatchItemResult]:
        """Run all jobs, at most concurrency_limit at a time.

        Args:
            jobs: Jobs in the order results should be returned.
            api_key: Resolved bearer credential shared by all jobs.
            concurrency_limit: Overrides the runner's default group size.

        Returns:
            One BatchItemResult per job, in input order.

        Raises:
            ValueError: If concurrency_limit is less than 1.
        """
        limit = self._concurrency_limit if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {limit}")

        results: list[BatchItemResult] = []
        for group_start in range(0, len(jobs), limit):
            group = jobs[group_start : group_start + limit]
            logger.debug(
                "Starting batch group",
                group_start=group_start,
                group_size=len(group),
                total_jobs=len(jobs),
            )
            group_results = await asyncio.gather(
                *(self._run_job(job, api_key) for job in group)
            )
            results.extend(group_results)

        succeeded = sum(1 for item in results if item.result.ok)
        logger.info(
            "Batch finished",
            total=len(results),
            successful=succeeded,
            failed=len(results) - succeeded,
        )
        return results

    async def _run_job(self, job: BatchJob, api_key: str | None) -> BatchItemResult:
        """Run one job, converting any exception into a failed result."""
        try:
            result = await self._orchestrator.run(
                job.candidates, job.template, job.extract, api_key
            )
        except Exception as e:  # noqa: BLE001 - one job must not abort its siblings
            logger.exception("Batch job raised", job=job.name, job_id=job.job_id)
            result = CanonicalResult.failed(FailureReason.JOB_ERROR, detail=str(e))
        return BatchItemResult(job=job, result=result)
