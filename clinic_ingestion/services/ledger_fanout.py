"""
LedgerFanout -- split a transaction's paid amounts into ledger entries.

Contract:
    For each payment category (plus rounding) whose ledger amount is
    positive, write one LedgerEntry carrying the category's external
    program id and the clinic's external office id.  A category with no
    program id, or a clinic with no office id, is skipped with a warning;
    neither is an error.

Ledger amount:
    paid - billed discount (floored at zero) when the category carries a
    discount, else paid; rounded half-up to whole currency units.

Invariants:
    - (transaction, program id, amount, date) is the ON CONFLICT target,
      so re-running the fan-out for the same transaction is a no-op.
    - external_account_id is set only when the payment method contains the
      configured QR-payment keyword.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_kernel.db.upsert import insert_or_ignore
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import Clinic, LedgerEntry, TargetCategory
from clinic_kernel.models.ledger_entry import LEDGER_KEY_COLUMNS

from clinic_ingestion.domain.fields import LEDGER_CATEGORIES, PaymentCategory
from clinic_ingestion.domain.types import FanoutOutcome, NormalizedRow

logger = get_logger("ingestion.ledger_fanout")

_ZERO = Decimal("0")
_WHOLE = Decimal("1")


def ledger_amount(row: NormalizedRow, category: PaymentCategory) -> Decimal:
    paid = row.amount(f"paid_{category.key}")
    if category.discountable:
        discount = row.amount(f"discount_{category.key}")
        if discount > _ZERO:
            paid = max(_ZERO, paid - discount)
    return paid.quantize(_WHOLE, rounding=ROUND_HALF_UP)


class LedgerFanout:
    def __init__(
        self,
        session: Session,
        clinic: Clinic,
        qr_payment_keyword: str = "QRIS",
    ) -> None:
        self._session = session
        self._clinic = clinic
        self._qr_keyword = qr_payment_keyword.upper()
        self._program_ids: dict[str, str] | None = None

    def program_ids(self) -> dict[str, str]:
        """TargetCategory name -> external program id, loaded once."""
        if self._program_ids is None:
            rows = self._session.execute(
                select(TargetCategory.name, TargetCategory.external_program_id).where(
                    TargetCategory.external_program_id.is_not(None)
                )
            )
            self._program_ids = {name: program_id for name, program_id in rows}
        return self._program_ids

    def account_id_for(self, payment_method: str) -> str | None:
        if self._qr_keyword and self._qr_keyword in (payment_method or "").upper():
            return self._clinic.external_account_id
        return None

    def fan_out(
        self,
        transaction_id: UUID,
        row: NormalizedRow,
        external_donor_id: str | None = None,
    ) -> FanoutOutcome:
        office_id = self._clinic.external_office_id
        account_id = self.account_id_for(row.payment_method)
        created = 0
        skipped: list[str] = []

        for category in LEDGER_CATEGORIES:
            amount = ledger_amount(row, category)
            if amount <= _ZERO:
                continue

            program_id = self.program_ids().get(category.ledger_name)
            if not program_id or not office_id:
                skipped.append(category.ledger_name)
                logger.warning(
                    "ledger_category_skipped",
                    extra={
                        "category": category.ledger_name,
                        "has_program_id": bool(program_id),
                        "has_office_id": bool(office_id),
                        "erm_no": row.erm_no,
                    },
                )
                continue

            inserted = insert_or_ignore(
                self._session,
                LedgerEntry,
                {
                    "transaction_id": transaction_id,
                    "category": category.ledger_name,
                    "external_program_id": program_id,
                    "external_office_id": office_id,
                    "trx_date": row.trx_date,
                    "external_donor_id": external_donor_id,
                    "amount": amount,
                    "external_account_id": account_id,
                    "patient_name": row.patient_name or None,
                    "erm_no": row.erm_no,
                    "synced": False,
                    "pending_sync": True,
                },
                LEDGER_KEY_COLUMNS,
            )
            if inserted:
                created += 1

        if created:
            logger.debug(
                "ledger_entries_created",
                extra={"transaction_id": transaction_id, "count": created},
            )
        return FanoutOutcome(created=created, skipped_categories=tuple(skipped))
