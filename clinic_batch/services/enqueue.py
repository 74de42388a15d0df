"""
Daily enqueue: one pending job per active clinic for a business day.

A public holiday enqueues nothing.  A clinic that already has a pending or
processing job for the same range is skipped, so re-running the tool on
the same day is harmless.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import Clinic, PublicHoliday

from clinic_batch.domain.types import ScrapeJob
from clinic_batch.services.queue_store import QueueStore

logger = get_logger("batch.enqueue")


@dataclass(frozen=True)
class EnqueueResult:
    day: date
    holiday: bool = False
    enqueued: tuple[ScrapeJob, ...] = field(default_factory=tuple)
    skipped_clinics: int = 0


def is_public_holiday(session: Session, day: date) -> bool:
    stmt = select(PublicHoliday.id).where(PublicHoliday.holiday_date == day)
    return session.scalars(stmt.limit(1)).first() is not None


def enqueue_day(session: Session, day: date, clock: Clock | None = None) -> EnqueueResult:
    if is_public_holiday(session, day):
        logger.info("enqueue_skipped_holiday", extra={"day": day})
        return EnqueueResult(day=day, holiday=True)

    store = QueueStore(session, clock or SystemClock())
    clinics = session.scalars(
        select(Clinic).where(Clinic.is_active.is_(True)).order_by(Clinic.name)
    ).all()

    enqueued: list[ScrapeJob] = []
    skipped = 0
    for clinic in clinics:
        if store.has_open_job(clinic.id, day, day):
            skipped += 1
            logger.info("enqueue_skipped_open_job", extra={"clinic_id": clinic.id, "day": day})
            continue
        enqueued.append(store.enqueue(clinic.id, day, day))

    logger.info(
        "enqueue_finished",
        extra={"day": day, "enqueued": len(enqueued), "skipped_clinics": skipped},
    )
    return EnqueueResult(day=day, enqueued=tuple(enqueued), skipped_clinics=skipped)
