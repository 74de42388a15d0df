"""
EntityUpserter -- resolve/create the patient and transaction for one row.

Contract:
    upsert(row) leaves exactly one Transaction for the row's natural key and
    one Patient for (clinic, record number), and reports whether each was
    created.  Runs inside the caller's transaction (normally a per-row
    SAVEPOINT); never commits.

Sequence (per row):
    1. Ensure the patient row exists (INSERT ... ON CONFLICT DO NOTHING; a
       fresh insert starts visit_count at 1 with first/last visit = row
       date), then take a row lock on it (SELECT ... FOR UPDATE).
    2. Existence check on the transaction natural key.  The patient lock
       serializes concurrent workers touching the same patient, so this
       check and the increment in step 6 observe each other.
    3. Merge the patient when it pre-existed: keep the prior name unless
       this row's is non-empty, widen first/last visit.  visit_count is
       not touched here.
    4. Resolve clinic-scoped department/insurance labels to canonical ids.
       An unmapped label stores NULL, is logged, and is reported back.
    5. Transaction upsert on the natural key.  On conflict only display
       fields, linkage and the raw payload are refreshed; amounts are kept.
    6. visit_count += 1 only when step 2 found no transaction AND the
       patient pre-existed (a new patient already starts at 1).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_kernel.db.upsert import insert_or_ignore, insert_or_update
from clinic_kernel.exceptions import PersistenceError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import (
    ClinicInsuranceMapping,
    ClinicPolyMapping,
    Patient,
    Transaction,
)
from clinic_kernel.models.transaction import NATURAL_KEY_COLUMNS

from clinic_ingestion.domain.fields import AMOUNT_COLUMNS
from clinic_ingestion.domain.types import NormalizedRow, UpsertOutcome

logger = get_logger("ingestion.upsert_service")

PATIENT_KEY_COLUMNS = ("clinic_id", "erm_no")

# Refreshed on natural-key conflict.  Amount columns are deliberately absent.
TRANSACTION_REFRESH_COLUMNS = (
    "trx_no",
    "patient_name",
    "insurance_type",
    "payment_method",
    "voucher_code",
    "patient_id",
    "poly_id",
    "insurance_type_id",
    "raw_payload",
    "input_type",
)

INPUT_TYPE_SCRAPE = "scrap"


class EntityUpserter:
    """Patient and transaction upserts for one clinic."""

    def __init__(self, session: Session, clinic_id: UUID) -> None:
        self._session = session
        self._clinic_id = clinic_id
        self._poly_ids: dict[str, UUID | None] = {}
        self._insurance_ids: dict[str, UUID | None] = {}

    def upsert(self, row: NormalizedRow) -> UpsertOutcome:
        patient, patient_created = self._lock_patient(row)
        existing_transaction_id = self.find_transaction_id(row)

        if not patient_created:
            self._merge_patient(patient, row)

        unmapped: list[str] = []
        poly_id = self._resolve_poly(row.polyclinic, unmapped)
        insurance_id = self._resolve_insurance(row.insurance_type, unmapped)

        insert_or_update(
            self._session,
            Transaction,
            self._transaction_values(row, patient.id, poly_id, insurance_id),
            NATURAL_KEY_COLUMNS,
            TRANSACTION_REFRESH_COLUMNS,
        )
        transaction_id = existing_transaction_id or self.find_transaction_id(row)
        if transaction_id is None:
            raise PersistenceError(
                "transaction_upsert",
                f"no row for {row.erm_no!r} on {row.trx_date} after upsert",
            )

        visit_incremented = existing_transaction_id is None and not patient_created
        if visit_incremented:
            patient.visit_count += 1
        self._session.flush()

        logger.debug(
            "row_upserted",
            extra={
                "erm_no": row.erm_no,
                "trx_date": row.trx_date,
                "transaction_created": existing_transaction_id is None,
                "patient_created": patient_created,
                "visit_count": patient.visit_count,
            },
        )
        return UpsertOutcome(
            transaction_id=transaction_id,
            patient_id=patient.id,
            transaction_created=existing_transaction_id is None,
            patient_created=patient_created,
            visit_incremented=visit_incremented,
            external_donor_id=patient.external_donor_id,
            unmapped_labels=tuple(unmapped),
        )

    def find_transaction_id(self, row: NormalizedRow) -> UUID | None:
        """Id of the transaction with this row's natural key, if any."""
        stmt = select(Transaction.id).where(
            Transaction.clinic_id == self._clinic_id,
            Transaction.erm_no == row.erm_no,
            Transaction.trx_date == row.trx_date,
            Transaction.polyclinic == row.polyclinic,
            Transaction.bill_total == row.bill_total,
        )
        return self._session.scalars(stmt.limit(1)).first()

    # ------------------------------------------------------------------
    # Patient
    # ------------------------------------------------------------------

    def _lock_patient(self, row: NormalizedRow) -> tuple[Patient, bool]:
        created = insert_or_ignore(
            self._session,
            Patient,
            {
                "clinic_id": self._clinic_id,
                "erm_no": row.erm_no,
                "full_name": row.patient_name or None,
                "first_visit_at": row.trx_date,
                "last_visit_at": row.trx_date,
                "visit_count": 1,
                "erm_no_for_sync": self._sync_key(row.erm_no),
            },
            PATIENT_KEY_COLUMNS,
        )
        stmt = (
            select(Patient)
            .where(Patient.clinic_id == self._clinic_id, Patient.erm_no == row.erm_no)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one(), created

    def _merge_patient(self, patient: Patient, row: NormalizedRow) -> None:
        if row.patient_name:
            patient.full_name = row.patient_name
        if row.trx_date < patient.first_visit_at:
            patient.first_visit_at = row.trx_date
        if row.trx_date > patient.last_visit_at:
            patient.last_visit_at = row.trx_date
        patient.erm_no_for_sync = self._sync_key(row.erm_no)

    def _sync_key(self, erm_no: str) -> str:
        return f"{self._clinic_id}{erm_no}"

    # ------------------------------------------------------------------
    # Canonical mappings
    # ------------------------------------------------------------------

    def _resolve_poly(self, label: str, unmapped: list[str]) -> UUID | None:
        if not label:
            return None
        if label not in self._poly_ids:
            stmt = select(ClinicPolyMapping.master_poly_id).where(
                ClinicPolyMapping.clinic_id == self._clinic_id,
                ClinicPolyMapping.raw_poly_name == label,
            )
            self._poly_ids[label] = self._session.scalars(stmt.limit(1)).first()
        return self._mapped(self._poly_ids[label], "polyclinic", label, unmapped)

    def _resolve_insurance(self, label: str, unmapped: list[str]) -> UUID | None:
        if not label:
            return None
        if label not in self._insurance_ids:
            stmt = select(ClinicInsuranceMapping.master_insurance_id).where(
                ClinicInsuranceMapping.clinic_id == self._clinic_id,
                ClinicInsuranceMapping.raw_insurance_name == label,
            )
            self._insurance_ids[label] = self._session.scalars(stmt.limit(1)).first()
        return self._mapped(self._insurance_ids[label], "insurance", label, unmapped)

    @staticmethod
    def _mapped(
        canonical_id: UUID | None, kind: str, label: str, unmapped: list[str],
    ) -> UUID | None:
        if canonical_id is None:
            unmapped.append(f"{kind}:{label}")
            logger.warning("category_label_unmapped", extra={"kind": kind, "label": label})
        return canonical_id

    # ------------------------------------------------------------------
    # Transaction
    # ------------------------------------------------------------------

    def _transaction_values(
        self,
        row: NormalizedRow,
        patient_id: UUID,
        poly_id: UUID | None,
        insurance_id: UUID | None,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {
            "clinic_id": self._clinic_id,
            "patient_id": patient_id,
            "poly_id": poly_id,
            "insurance_type_id": insurance_id,
            "trx_date": row.trx_date,
            "trx_no": row.trx_no,
            "erm_no": row.erm_no,
            "patient_name": row.patient_name or None,
            "insurance_type": row.insurance_type or None,
            "polyclinic": row.polyclinic,
            "payment_method": row.payment_method or None,
            "voucher_code": row.voucher_code,
            "raw_payload": dict(row.raw),
            "input_type": INPUT_TYPE_SCRAPE,
            "synced": False,
        }
        for column in AMOUNT_COLUMNS:
            values[column] = row.amount(column)
        return values
