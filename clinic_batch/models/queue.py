"""
ORM model for the scrape queue.

Contract:
    ScrapeJobModel persists one scrape job per (clinic, date range) request.
    Rows are created by the enqueue tool or the external configuration
    subsystem, mutated only by QueueStore, and never deleted.

Architecture: clinic_batch/models.  Imports from clinic_kernel.db.base only.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from clinic_batch.domain.types import ScrapeJob


class ScrapeJobModel(TrackedBase):
    """Persistent scrape job record."""

    __tablename__ = "scrape_queue"

    __table_args__ = (
        Index("ix_scrape_queue_status_created", "status", "created_at"),
        Index("ix_scrape_queue_clinic_range", "clinic_id", "start_date", "end_date"),
    )

    clinic_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    run_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dto(self) -> ScrapeJob:
        from clinic_batch.domain.types import ScrapeJob, ScrapeJobStatus

        return ScrapeJob(
            job_id=self.id,
            clinic_id=self.clinic_id,
            start_date=self.start_date,
            end_date=self.end_date,
            status=ScrapeJobStatus(self.status),
            run_id=self.run_id,
            error_message=self.error_message,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
