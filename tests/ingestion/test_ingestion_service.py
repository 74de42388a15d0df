"""Tests for IngestionService: the row boundary and per-job counts."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from clinic_ingestion.domain.fields import DATE_FIELD, ERM_NO_FIELD
from clinic_ingestion.services.ingestion_service import IngestionService
from clinic_ingestion.services.upsert_service import EntityUpserter
from clinic_kernel.exceptions import PersistenceError
from clinic_kernel.models import LedgerEntry, Patient, Transaction


def count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def rows(report_row):
    return [
        report_row({ERM_NO_FIELD: "ERM-0001"}),
        report_row({ERM_NO_FIELD: "ERM-0002", DATE_FIELD: "tanggal rusak"}),
        report_row({ERM_NO_FIELD: "ERM-0003"}, amounts={"paid_lab": "20,000"}),
    ]


class TestIngest:
    def test_counts_and_persists_rows(self, session, clinic, config, rows):
        counts = IngestionService(session, clinic, config).ingest(rows)

        assert counts.scraped == 3
        assert counts.inserted == 2
        assert counts.updated == 0
        assert counts.skipped == 1
        assert counts.ledger_created == 3
        assert counts.unmapped_labels == 4
        assert count(session, Transaction) == 2
        assert count(session, Patient) == 2

    def test_bad_row_is_logged_and_others_continue(self, session, clinic, config, rows, captured_logs):
        IngestionService(session, clinic, config).ingest(rows)

        skipped = [r for r in captured_logs() if r["message"] == "row_skipped"]
        assert len(skipped) == 1
        assert skipped[0]["row_index"] == 2
        assert skipped[0]["field"] == DATE_FIELD
        assert skipped[0]["raw_value"] == "tanggal rusak"

    def test_reprocessing_updates_instead_of_inserting(self, session, clinic, config, rows):
        IngestionService(session, clinic, config).ingest(rows)
        session.commit()

        counts = IngestionService(session, clinic, config).ingest(rows)

        assert counts.inserted == 0
        assert counts.updated == 2
        assert counts.ledger_created == 0
        assert count(session, Transaction) == 2
        assert count(session, LedgerEntry) == 3

    def test_date_without_day_is_skipped(self, session, clinic, config, report_row, captured_logs):
        rows = [report_row({ERM_NO_FIELD: "ERM-0004", DATE_FIELD: "January 2026"})]

        counts = IngestionService(session, clinic, config).ingest(rows)

        assert counts.skipped == 1
        assert counts.inserted == 0
        assert count(session, Transaction) == 0
        [skipped] = [r for r in captured_logs() if r["message"] == "row_skipped"]
        assert skipped["field"] == DATE_FIELD
        assert skipped["raw_value"] == "January 2026"

    def test_empty_report(self, session, clinic, config):
        counts = IngestionService(session, clinic, config).ingest([])
        assert counts.as_payload() == {
            "scraped": 0,
            "inserted": 0,
            "updated": 0,
            "skipped": 0,
            "ledger_created": 0,
            "ledger_skipped": 0,
            "unmapped_labels": 0,
        }

    def test_store_failure_fails_the_job(self, session, clinic, config, rows, monkeypatch):
        calls = []
        original = EntityUpserter.upsert

        def flaky(self, row):
            calls.append(row.erm_no)
            if row.erm_no == "ERM-0003":
                raise OperationalError("INSERT INTO transactions", {}, Exception("database is locked"))
            return original(self, row)

        monkeypatch.setattr(EntityUpserter, "upsert", flaky)

        with pytest.raises(PersistenceError) as exc_info:
            IngestionService(session, clinic, config).ingest(rows)

        assert exc_info.value.operation == "ingest_row"
        assert calls == ["ERM-0001", "ERM-0003"]
        # Earlier rows stay in the caller's transaction, which decides.
        assert count(session, Transaction) == 1
