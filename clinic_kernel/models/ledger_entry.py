"""
Category-level ledger entries derived from transactions.

Contract:
    One row per non-zero payment category per transaction, consumed by the
    external accounting sync (which flips ``synced``).

Invariants:
    - (transaction_id, external_program_id, amount, trx_date) is UNIQUE, so
      re-running fan-out for the same transaction never duplicates entries.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase, UUIDString

LEDGER_KEY_COLUMNS = ("transaction_id", "external_program_id", "amount", "trx_date")


class LedgerEntry(TrackedBase):
    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint(*LEDGER_KEY_COLUMNS, name="uq_ledger_entry"),
        Index("ix_ledger_entries_synced", "synced"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False,
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    external_program_id: Mapped[str] = mapped_column(String(100), nullable=False)
    external_office_id: Mapped[str] = mapped_column(String(100), nullable=False)
    trx_date: Mapped[date] = mapped_column(nullable=False)
    external_donor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    external_account_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    patient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    erm_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pending_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
