"""
BatchOrchestrator -- process up to N queued scrape jobs, one after another.

Contract:
    run(limit, run_id) claims and runs jobs sequentially until the queue is
    empty or ``limit`` jobs were processed, then returns a BatchRunSummary.
    There is no internal scheduling loop; an external scheduler invokes the
    batch repeatedly.

Invariants enforced:
    - Each claim is committed on its own before the job runs, so a
      concurrent worker never sees the job as pending.
    - One job's failure never aborts the batch: ScrapeJobRunner records it,
      and a failure to record it is logged here and the batch continues.
    - Clock injection: the runner and queue store share one Clock.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Mapping
from uuid import uuid4

from sqlalchemy.orm import Session

from clinic_config.schema import PipelineConfig
from clinic_kernel.db.engine import session_scope
from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale
from clinic_portal.scraper import ReportScraper

from clinic_batch.domain.types import (
    BatchRunSummary,
    JobRunResult,
    ScrapeJob,
    ScrapeJobStatus,
)
from clinic_batch.services.job_runner import ScrapeJobRunner
from clinic_batch.services.queue_store import QueueStore

logger = get_logger("batch.orchestrator")


def resolve_run_id(env: Mapping[str, str] | None = None) -> str:
    """CI run id when present (GITHUB_RUN_ID), else a fresh uuid."""
    env = os.environ if env is None else env
    return env.get("GITHUB_RUN_ID") or uuid4().hex


class BatchOrchestrator:
    """Composes QueueStore and ScrapeJobRunner into one bounded batch."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: PipelineConfig,
        scraper: ReportScraper,
        clock: Clock | None = None,
        locale: PortalLocale = DEFAULT_LOCALE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._config = config
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._runner = ScrapeJobRunner(
            session_factory=session_factory,
            config=config,
            scraper=scraper,
            clock=self._clock,
            locale=locale,
        )

    def run(self, limit: int | None = None, run_id: str | None = None) -> BatchRunSummary:
        limit = limit if limit is not None else self._config.batch_limit
        run_id = run_id or resolve_run_id()
        results: list[JobRunResult] = []

        with LogContext.bind(run_id=run_id):
            logger.info("batch_started", extra={"limit": limit})
            while len(results) < limit:
                job = self.claim(run_id)
                if job is None:
                    break
                if results and self._config.inter_job_delay_ms > 0:
                    self._sleep(self._config.inter_job_delay_ms / 1000)
                results.append(self._run_guarded(job))

            summary = BatchRunSummary(
                run_id=run_id,
                processed=len(results),
                completed=sum(1 for r in results if r.ok),
                failed=sum(1 for r in results if not r.ok),
                results=tuple(results),
            )
            logger.info(
                "batch_finished",
                extra={
                    "processed": summary.processed,
                    "completed": summary.completed,
                    "failed": summary.failed,
                },
            )
        return summary

    def claim(self, run_id: str) -> ScrapeJob | None:
        with session_scope(self._session_factory) as session:
            return QueueStore(session, self._clock).claim_next(run_id)

    def _run_guarded(self, job: ScrapeJob) -> JobRunResult:
        try:
            return self._runner.run(job)
        except Exception as exc:
            # The failure itself could not be recorded (e.g. store down);
            # the job stays "processing" until external reconciliation.
            logger.exception(
                "job_failure_unrecorded",
                extra={"job_id": job.job_id, "clinic_id": job.clinic_id},
            )
            return JobRunResult(
                job_id=job.job_id,
                clinic_id=job.clinic_id,
                status=ScrapeJobStatus.FAILED,
                error_code=getattr(exc, "code", None),
                error_message=str(exc),
            )
