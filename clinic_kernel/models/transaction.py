"""
Financial transaction scraped from the daily revenue report.

Contract:
    One logical row per real-world transaction.  The natural key
    (clinic_id, erm_no, trx_date, polyclinic, bill_total) is the sole
    duplication guard across repeated scrapes of overlapping date ranges.

Invariants:
    - The natural key is a UNIQUE constraint and the ON CONFLICT target of
      every insert.  polyclinic is NOT NULL (empty string when absent) so
      the constraint also holds for rows without a department label.
    - Amount columns are written on first insert only; re-scrapes refresh
      display fields and the raw payload.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString

NATURAL_KEY_COLUMNS = ("clinic_id", "erm_no", "trx_date", "polyclinic", "bill_total")


def _amount() -> Mapped[Decimal]:
    return mapped_column(default=Decimal("0"), nullable=False)


class Transaction(TrackedBase):
    __tablename__ = "transactions"

    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY_COLUMNS, name="uq_transaction_entry"),
        Index("ix_transactions_clinic_date", "clinic_id", "trx_date"),
        Index("ix_transactions_synced", "synced"),
    )

    clinic_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False,
    )
    patient_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("patients.id", ondelete="SET NULL"), nullable=True,
    )
    poly_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    insurance_type_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Identity
    trx_date: Mapped[date] = mapped_column(nullable=False)
    trx_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    erm_no: Mapped[str] = mapped_column(String(50), nullable=False)
    patient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    insurance_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    polyclinic: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    payment_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    voucher_code: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Billed
    bill_registration: Mapped[Decimal] = _amount()
    bill_procedure: Mapped[Decimal] = _amount()
    bill_lab: Mapped[Decimal] = _amount()
    bill_pharmacy: Mapped[Decimal] = _amount()
    bill_supplies: Mapped[Decimal] = _amount()
    bill_checkup: Mapped[Decimal] = _amount()
    bill_radiology: Mapped[Decimal] = _amount()
    bill_total: Mapped[Decimal] = _amount()

    # Billed discounts
    discount_registration: Mapped[Decimal] = _amount()
    discount_procedure: Mapped[Decimal] = _amount()
    discount_lab: Mapped[Decimal] = _amount()
    discount_pharmacy: Mapped[Decimal] = _amount()
    discount_supplies: Mapped[Decimal] = _amount()
    discount_checkup: Mapped[Decimal] = _amount()
    discount_radiology: Mapped[Decimal] = _amount()

    # Covered by insurer
    covered_registration: Mapped[Decimal] = _amount()
    covered_procedure: Mapped[Decimal] = _amount()
    covered_lab: Mapped[Decimal] = _amount()
    covered_pharmacy: Mapped[Decimal] = _amount()
    covered_supplies: Mapped[Decimal] = _amount()
    covered_checkup: Mapped[Decimal] = _amount()
    covered_radiology: Mapped[Decimal] = _amount()
    covered_total: Mapped[Decimal] = _amount()

    # Paid by patient
    paid_registration: Mapped[Decimal] = _amount()
    paid_procedure: Mapped[Decimal] = _amount()
    paid_lab: Mapped[Decimal] = _amount()
    paid_pharmacy: Mapped[Decimal] = _amount()
    paid_supplies: Mapped[Decimal] = _amount()
    paid_checkup: Mapped[Decimal] = _amount()
    paid_radiology: Mapped[Decimal] = _amount()
    paid_rounding: Mapped[Decimal] = _amount()
    paid_discount: Mapped[Decimal] = _amount()
    paid_tax: Mapped[Decimal] = _amount()
    paid_voucher: Mapped[Decimal] = _amount()
    paid_total: Mapped[Decimal] = _amount()

    # Receivable
    receivable_registration: Mapped[Decimal] = _amount()
    receivable_procedure: Mapped[Decimal] = _amount()
    receivable_lab: Mapped[Decimal] = _amount()
    receivable_pharmacy: Mapped[Decimal] = _amount()
    receivable_supplies: Mapped[Decimal] = _amount()
    receivable_checkup: Mapped[Decimal] = _amount()
    receivable_radiology: Mapped[Decimal] = _amount()
    receivable_total: Mapped[Decimal] = _amount()

    raw_payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    input_type: Mapped[str] = mapped_column(String(50), nullable=False, default="scrap")
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
