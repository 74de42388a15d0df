"""
clinic_batch -- queue-driven scrape batches.

    QueueStore        durable jobs, atomic claim, status transitions
    ScrapeJobRunner   job boundary: scrape, ingest, audit, mark
    BatchOrchestrator bounded sequential batch over the queue
"""

from clinic_batch.domain.types import (
    BatchRunSummary,
    JobRunResult,
    ScrapeJob,
    ScrapeJobStatus,
)
from clinic_batch.orchestrator import BatchOrchestrator, resolve_run_id
from clinic_batch.services.job_runner import ScrapeJobRunner
from clinic_batch.services.queue_store import QueueStore

__all__ = [
    "BatchOrchestrator",
    "BatchRunSummary",
    "JobRunResult",
    "QueueStore",
    "ScrapeJob",
    "ScrapeJobRunner",
    "ScrapeJobStatus",
    "resolve_run_id",
]
