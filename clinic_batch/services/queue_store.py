"""
QueueStore -- durable scrape jobs and their status transitions.

Contract:
    Every status change is a single conditional UPDATE whose WHERE clause
    names the expected current status, so the database decides which
    writer wins.  The service never commits; callers own the transaction
    (the orchestrator commits each claim immediately so other workers see
    it).

Claim:
    1. Pick the oldest pending id (SELECT ... FOR UPDATE SKIP LOCKED on
       PostgreSQL, so concurrent workers pass over each other's candidate).
    2. UPDATE ... SET status='processing' WHERE id=:id AND status='pending'.
    3. rowcount == 1 means this worker owns the job; 0 means another
       worker won the race and the next candidate is tried.

Failure modes:
    - JobNotFoundError for an unknown job id.
    - InvalidJobTransitionError when the job is not in the status the
      transition requires (e.g. completing a job twice).
    - ClinicNotFoundError when enqueueing for an unknown clinic.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.exceptions import (
    ClinicNotFoundError,
    InvalidJobTransitionError,
    JobNotFoundError,
)
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import Clinic

from clinic_batch.domain.types import (
    ALLOWED_TRANSITIONS,
    OPEN_STATUSES,
    ScrapeJob,
    ScrapeJobStatus,
)
from clinic_batch.models.queue import ScrapeJobModel

logger = get_logger("batch.queue_store")

# Lost races tolerated per claim call before reporting an empty queue.
MAX_CLAIM_ATTEMPTS = 5
MAX_ERROR_MESSAGE_CHARS = 2_000


class QueueStore:
    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        self._session = session
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------------

    def enqueue(self, clinic_id: UUID, start_date: date, end_date: date) -> ScrapeJob:
        """Create a pending job for a clinic and date range."""
        if self._session.get(Clinic, clinic_id) is None:
            raise ClinicNotFoundError(str(clinic_id))
        if end_date < start_date:
            raise ValueError(f"end_date {end_date} is before start_date {start_date}")

        job = ScrapeJobModel(
            clinic_id=clinic_id,
            start_date=start_date,
            end_date=end_date,
            status=ScrapeJobStatus.PENDING.value,
            created_at=self._clock.now(),
        )
        self._session.add(job)
        self._session.flush()
        logger.info(
            "job_enqueued",
            extra={
                "job_id": job.id,
                "clinic_id": clinic_id,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        return job.to_dto()

    def has_open_job(self, clinic_id: UUID, start_date: date, end_date: date) -> bool:
        """True when a pending or processing job exists for exactly this range."""
        stmt = select(ScrapeJobModel.id).where(
            ScrapeJobModel.clinic_id == clinic_id,
            ScrapeJobModel.start_date == start_date,
            ScrapeJobModel.end_date == end_date,
            ScrapeJobModel.status.in_([s.value for s in OPEN_STATUSES]),
        )
        return self._session.scalars(stmt.limit(1)).first() is not None

    # -------------------------------------------------------------------------
    # Claim
    # -------------------------------------------------------------------------

    def claim_next(self, run_id: str) -> ScrapeJob | None:
        """Atomically move the oldest pending job to processing, or return None."""
        for attempt in range(1, MAX_CLAIM_ATTEMPTS + 1):
            candidate_id = self._session.scalars(
                select(ScrapeJobModel.id)
                .where(ScrapeJobModel.status == ScrapeJobStatus.PENDING.value)
                .order_by(ScrapeJobModel.created_at, ScrapeJobModel.id)
                .limit(1)
                .with_for_update(skip_locked=True)
            ).first()
            if candidate_id is None:
                return None

            result = self._session.execute(
                update(ScrapeJobModel)
                .where(
                    ScrapeJobModel.id == candidate_id,
                    ScrapeJobModel.status == ScrapeJobStatus.PENDING.value,
                )
                .values(
                    status=ScrapeJobStatus.PROCESSING.value,
                    run_id=run_id,
                    started_at=self._clock.now(),
                    error_message=None,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                job = self.get_job(candidate_id)
                logger.info(
                    "job_claimed",
                    extra={
                        "job_id": job.job_id,
                        "clinic_id": job.clinic_id,
                        "start_date": job.start_date,
                        "end_date": job.end_date,
                        "attempt": attempt,
                    },
                )
                return job

            logger.info("job_claim_lost", extra={"job_id": candidate_id, "attempt": attempt})
        return None

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def mark_completed(self, job_id: UUID) -> ScrapeJob:
        return self._transition(
            job_id,
            ScrapeJobStatus.COMPLETED,
            completed_at=self._clock.now(),
        )

    def mark_failed(self, job_id: UUID, error_message: str) -> ScrapeJob:
        return self._transition(
            job_id,
            ScrapeJobStatus.FAILED,
            completed_at=self._clock.now(),
            error_message=(error_message or "")[:MAX_ERROR_MESSAGE_CHARS],
        )

    def get_job(self, job_id: UUID) -> ScrapeJob:
        job = self._session.get(ScrapeJobModel, job_id, populate_existing=True)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job.to_dto()

    def _transition(self, job_id: UUID, to_status: ScrapeJobStatus, **values) -> ScrapeJob:
        from_statuses = [
            source.value
            for source, targets in ALLOWED_TRANSITIONS.items()
            if to_status in targets
        ]
        result = self._session.execute(
            update(ScrapeJobModel)
            .where(ScrapeJobModel.id == job_id, ScrapeJobModel.status.in_(from_statuses))
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self.get_job(job_id)
            raise InvalidJobTransitionError(str(job_id), current.status.value, to_status.value)

        job = self.get_job(job_id)
        logger.info(
            "job_status_changed",
            extra={"job_id": job_id, "status": to_status.value},
        )
        return job
