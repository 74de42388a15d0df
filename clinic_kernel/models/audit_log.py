"""
One outcome record per scrape-job attempt.

Rows are append-only; AuditLogger is the only writer.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString


class AuditLog(TrackedBase):
    __tablename__ = "system_logs"

    __table_args__ = (
        Index("ix_system_logs_clinic_created", "clinic_id", "created_at"),
        Index("ix_system_logs_job", "job_id"),
    )

    clinic_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="SET NULL"), nullable=True,
    )
    job_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    process_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
