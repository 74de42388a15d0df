"""
Pytest fixtures for the clinic scrape pipeline test suite.

Provides:
- Structured logging at DEBUG with per-test LogContext isolation
- ``captured_logs`` for asserting on JSON log lines
- A file-backed SQLite store (one per test) with every table created
- A seeded clinic with ledger categories, and a report-row builder

The browser is never launched: portal tests use the fakes in
tests/portal/fakes.py.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinic_config.schema import PipelineConfig
from clinic_ingestion.domain.fields import (
    AMOUNT_COLUMNS,
    BILLED,
    DATE_FIELD,
    ERM_NO_FIELD,
    INSURANCE_FIELD,
    LEDGER_CATEGORIES,
    PAID,
    PATIENT_NAME_FIELD,
    PAYMENT_METHOD_FIELD,
    POLYCLINIC_FIELD,
    TRX_NO_FIELD,
    VOUCHER_FIELD,
    column_label,
)
from clinic_kernel.db.base import Base
from clinic_kernel.db.engine import enable_sqlite_savepoints, import_all_orm_models
from clinic_kernel.domain.clock import DeterministicClock
from clinic_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from clinic_kernel.models import Clinic, TargetCategory


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture clinic.* logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "job_claimed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("clinic")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions can take turns, as in a batch."""
    eng = create_engine(f"sqlite:///{tmp_path / 'clinic.db'}")
    enable_sqlite_savepoints(eng)
    import_all_orm_models()
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2026, 1, 28, 1, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return PipelineConfig(inter_job_delay_ms=0, diagnostics_dir=None)


PROGRAM_IDS = {cat.ledger_name: f"PRG-{cat.key.upper()}" for cat in LEDGER_CATEGORIES}


@pytest.fixture
def clinic(session_factory):
    """An active clinic with office/account ids and every ledger category mapped."""
    with session_factory() as s:
        c = Clinic(
            name="Klinik Sehat Pusat",
            location="Klinik Sehat",
            login_url="https://portal.example.test/login",
            username="operator",
            password_encrypted="s3cret",
            external_office_id="OFFICE-1",
            external_account_id="ACC-QR",
        )
        s.add(c)
        for name, program_id in PROGRAM_IDS.items():
            s.add(TargetCategory(name=name, external_program_id=program_id))
        s.commit()
        return c


# =============================================================================
# Report rows
# =============================================================================


def build_report_row(fields: dict | None = None, amounts: dict | None = None) -> dict[str, str]:
    """
    A flattened report row as TableExtractor would produce it.

    ``fields`` overrides plain columns by label; ``amounts`` overrides
    amount columns by Transaction column name (e.g. ``paid_lab``).
    """
    row = {
        DATE_FIELD: "28 January 2026",
        TRX_NO_FIELD: "TRX-0001",
        ERM_NO_FIELD: "ERM-0001",
        PATIENT_NAME_FIELD: "Siti Aminah",
        INSURANCE_FIELD: "UMUM",
        POLYCLINIC_FIELD: "Poli Umum",
        PAYMENT_METHOD_FIELD: "Tunai",
        VOUCHER_FIELD: "-",
    }
    for label in AMOUNT_COLUMNS.values():
        row[label] = "-"
    row[column_label(BILLED, "Total")] = "150,000"
    row[column_label(PAID, "Tindakan")] = "150,000"
    row[column_label(PAID, "Total")] = "150,000"
    for column, value in (amounts or {}).items():
        row[AMOUNT_COLUMNS[column]] = value
    row.update(fields or {})
    return row


@pytest.fixture
def report_row():
    return build_report_row
