"""
clinic_batch.domain.types -- pure frozen dataclasses for the scrape queue.

ZERO I/O.

Invariants enforced:
    - Job status only moves along ALLOWED_TRANSITIONS:
          pending -> processing -> completed | failed
      completed and failed are terminal; jobs are never deleted.
    - All DTOs are frozen; services return fresh snapshots after every
      transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ScrapeJobStatus(str, Enum):
    """Queue lifecycle of one scrape job."""

    PENDING = "pending"  # Enqueued, not yet claimed
    PROCESSING = "processing"  # Claimed by a worker
    COMPLETED = "completed"  # All rows processed
    FAILED = "failed"  # Unrecoverable error; message retained


ALLOWED_TRANSITIONS: dict[ScrapeJobStatus, frozenset[ScrapeJobStatus]] = {
    ScrapeJobStatus.PENDING: frozenset({ScrapeJobStatus.PROCESSING}),
    ScrapeJobStatus.PROCESSING: frozenset({ScrapeJobStatus.COMPLETED, ScrapeJobStatus.FAILED}),
    ScrapeJobStatus.COMPLETED: frozenset(),
    ScrapeJobStatus.FAILED: frozenset(),
}

OPEN_STATUSES = (ScrapeJobStatus.PENDING, ScrapeJobStatus.PROCESSING)


@dataclass(frozen=True)
class ScrapeJob:
    """Immutable snapshot of a queued scrape job."""

    job_id: UUID
    clinic_id: UUID
    start_date: date
    end_date: date
    status: ScrapeJobStatus
    run_id: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class JobRunResult:
    """Outcome of one job attempt inside a batch."""

    job_id: UUID
    clinic_id: UUID
    status: ScrapeJobStatus
    counts: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == ScrapeJobStatus.COMPLETED


@dataclass(frozen=True)
class BatchRunSummary:
    """Returned by BatchOrchestrator.run()."""

    run_id: str
    processed: int
    completed: int
    failed: int
    results: tuple[JobRunResult, ...] = field(default_factory=tuple)
