"""
Patient master record.

Invariants:
    - Unique on (clinic_id, erm_no).
    - visit_count equals the number of distinct transactions ever seen for
      the patient; only EntityUpserter changes it, under a row lock.
    - full_name is never overwritten with a blank value.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString


class Patient(TrackedBase):
    __tablename__ = "patients"

    __table_args__ = (
        UniqueConstraint("clinic_id", "erm_no", name="uq_patient_per_clinic"),
        Index("ix_patients_erm_no_for_sync", "erm_no_for_sync"),
    )

    clinic_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False,
    )
    erm_no: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_visit_at: Mapped[date] = mapped_column(nullable=False)
    last_visit_at: Mapped[date] = mapped_column(nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    external_donor_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )
    # Clinic id concatenated with the record number; the downstream sync key.
    erm_no_for_sync: Mapped[str | None] = mapped_column(String(100), nullable=True)
