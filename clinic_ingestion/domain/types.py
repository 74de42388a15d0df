"""
clinic_ingestion.domain.types -- frozen values passed between ingestion steps.

ZERO I/O.  NormalizedRow is what RowNormalizer produces and what the
upserter and ledger fan-out consume; IngestionCounts is the per-job tally
written to the audit log.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

_ZERO = Decimal("0")


@dataclass(frozen=True)
class NormalizedRow:
    """One report row with typed values."""

    trx_date: date
    erm_no: str
    patient_name: str
    trx_no: str | None
    insurance_type: str
    polyclinic: str
    payment_method: str
    voucher_code: str | None
    amounts: dict[str, Decimal] = field(default_factory=dict)
    raw: dict[str, str] = field(default_factory=dict)

    def amount(self, column: str) -> Decimal:
        return self.amounts.get(column, _ZERO)

    @property
    def bill_total(self) -> Decimal:
        return self.amount("bill_total")


@dataclass(frozen=True)
class UpsertOutcome:
    """What EntityUpserter did for one row."""

    transaction_id: UUID
    patient_id: UUID
    transaction_created: bool
    patient_created: bool
    visit_incremented: bool
    external_donor_id: str | None = None
    unmapped_labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class FanoutOutcome:
    created: int
    skipped_categories: tuple[str, ...] = ()


@dataclass
class IngestionCounts:
    """Running tally for one job's rows."""

    scraped: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    ledger_created: int = 0
    ledger_skipped: int = 0
    unmapped_labels: int = 0

    def as_payload(self) -> dict[str, Any]:
        return asdict(self)
