"""
Clinic and clinic-scoped reference data.

Contract:
    These tables are owned by the external configuration subsystem.  The
    ingestion pipeline only reads them: clinic credentials and downstream
    identifiers, raw-label -> canonical-id mappings, target categories, and
    public holidays.

Architecture: clinic_kernel/models. Imports from clinic_kernel.db.base only.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString

DEFAULT_LOGIN_URL = "https://csf.eclinic.id/login"


class Clinic(TrackedBase):
    """A clinic whose portal account is scraped."""

    __tablename__ = "clinics"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Label shown in the portal's clinic autocomplete; falls back to name.
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    login_url: Mapped[str] = mapped_column(
        String(255), nullable=False, default=DEFAULT_LOGIN_URL,
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    external_office_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )
    external_account_id: Mapped[str | None] = mapped_column(
        String(50), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_scraped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    @property
    def portal_label(self) -> str:
        """Text typed into the portal's clinic selector."""
        return self.location or self.name


class ClinicPolyMapping(TrackedBase):
    """Clinic-scoped department/room label -> canonical polyclinic id."""

    __tablename__ = "clinic_poly_mappings"

    __table_args__ = (
        UniqueConstraint("clinic_id", "raw_poly_name", name="uq_poly_mapping_per_clinic"),
    )

    clinic_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False,
    )
    raw_poly_name: Mapped[str] = mapped_column(String(100), nullable=False)
    master_poly_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)


class ClinicInsuranceMapping(TrackedBase):
    """Clinic-scoped insurance label -> canonical insurance type id."""

    __tablename__ = "clinic_insurance_mappings"

    __table_args__ = (
        UniqueConstraint(
            "clinic_id", "raw_insurance_name", name="uq_insurance_mapping_per_clinic",
        ),
    )

    clinic_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False,
    )
    raw_insurance_name: Mapped[str] = mapped_column(String(100), nullable=False)
    master_insurance_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )


class TargetCategory(TrackedBase):
    """Revenue category name -> external program id used by ledger entries."""

    __tablename__ = "target_categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    external_program_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )


class PublicHoliday(TrackedBase):
    """A day on which no scrape job is enqueued."""

    __tablename__ = "public_holidays"

    __table_args__ = (
        Index("ix_public_holidays_date", "holiday_date"),
    )

    holiday_date: Mapped[date] = mapped_column(nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
