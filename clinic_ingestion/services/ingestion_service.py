"""
IngestionService -- normalize, upsert and fan out every scraped row of a job.

Contract:
    ingest(rows) processes rows one at a time, in report order, because the
    visit-count rule depends on the effects of earlier rows.  The caller
    owns the transaction; this service never commits.

Row boundary:
    - RowParseError: the row is skipped and counted; other rows continue.
    - SQLAlchemyError: the row's SAVEPOINT is rolled back and the failure is
      raised as PersistenceError, which fails the whole job.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import PersistenceError, RowParseError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import Clinic
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale

from clinic_ingestion.domain.normalizer import RowNormalizer
from clinic_ingestion.domain.types import IngestionCounts
from clinic_ingestion.services.ledger_fanout import LedgerFanout
from clinic_ingestion.services.upsert_service import EntityUpserter

logger = get_logger("ingestion.service")


class IngestionService:
    def __init__(
        self,
        session: Session,
        clinic: Clinic,
        config: PipelineConfig,
        locale: PortalLocale = DEFAULT_LOCALE,
    ) -> None:
        self._session = session
        self._normalizer = RowNormalizer(locale)
        self._upserter = EntityUpserter(session, clinic.id)
        self._fanout = LedgerFanout(session, clinic, config.qr_payment_keyword)

    def ingest(self, rows: Iterable[Mapping[str, str]]) -> IngestionCounts:
        counts = IngestionCounts()
        for index, raw in enumerate(rows, start=1):
            counts.scraped += 1
            try:
                row = self._normalizer.normalize(raw)
            except RowParseError as exc:
                counts.skipped += 1
                logger.warning(
                    "row_skipped",
                    extra={
                        "row_index": index,
                        "field": exc.field,
                        "raw_value": exc.raw_value,
                        "reason": exc.reason,
                    },
                )
                continue

            savepoint = self._session.begin_nested()
            try:
                outcome = self._upserter.upsert(row)
                fanout = self._fanout.fan_out(
                    outcome.transaction_id, row, outcome.external_donor_id,
                )
                savepoint.commit()
            except SQLAlchemyError as exc:
                savepoint.rollback()
                logger.error(
                    "row_persist_failed",
                    exc_info=True,
                    extra={"row_index": index, "erm_no": row.erm_no},
                )
                raise PersistenceError("ingest_row", str(exc)) from exc

            if outcome.transaction_created:
                counts.inserted += 1
            else:
                counts.updated += 1
            counts.ledger_created += fanout.created
            counts.ledger_skipped += len(fanout.skipped_categories)
            counts.unmapped_labels += len(outcome.unmapped_labels)

        logger.info("rows_ingested", extra=counts.as_payload())
        return counts
