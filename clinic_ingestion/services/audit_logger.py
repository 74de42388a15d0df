"""
AuditLogger -- exactly one system_logs row per scrape-job attempt.

Success payload: the ingestion counts and the date range.  Failure payload:
error kind and code, message, and the formatted traceback truncated to its
last ``trace_max_chars`` characters (the innermost frames matter most).
"""

from __future__ import annotations

import traceback
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import AuditLog

from clinic_ingestion.domain.types import IngestionCounts

logger = get_logger("ingestion.audit_logger")

PROCESS_TYPE = "scrape"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
TRUNCATION_MARKER = "...[truncated]\n"


def truncate_trace(trace: str, max_chars: int) -> str:
    """Keep the last ``max_chars`` characters of ``trace``, marked when cut."""
    if len(trace) <= max_chars:
        return trace
    return TRUNCATION_MARKER + trace[-max_chars:]


class AuditLogger:
    def __init__(self, session: Session, trace_max_chars: int = 4000) -> None:
        self._session = session
        self._trace_max_chars = trace_max_chars

    def record_success(
        self,
        *,
        clinic_id: UUID,
        job_id: UUID | None,
        counts: IngestionCounts,
        start_date: date,
        end_date: date,
    ) -> AuditLog:
        payload: dict[str, Any] = {
            **counts.as_payload(),
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
        message = (
            f"Scraped {counts.scraped} rows: {counts.inserted} inserted, "
            f"{counts.updated} updated, {counts.skipped} skipped, "
            f"{counts.ledger_created} ledger entries"
        )
        return self._write(clinic_id, job_id, STATUS_SUCCESS, message, payload)

    def record_failure(
        self,
        *,
        clinic_id: UUID | None,
        job_id: UUID | None,
        error: BaseException,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AuditLog:
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        payload: dict[str, Any] = {
            "error_kind": type(error).__name__,
            "error_code": getattr(error, "code", None),
            "retryable": getattr(error, "retryable", False),
            "message": str(error),
            "trace": truncate_trace(trace, self._trace_max_chars),
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        }
        return self._write(clinic_id, job_id, STATUS_FAILED, str(error), payload)

    def _write(
        self,
        clinic_id: UUID | None,
        job_id: UUID | None,
        status: str,
        message: str,
        payload: dict[str, Any],
    ) -> AuditLog:
        entry = AuditLog(
            clinic_id=clinic_id,
            job_id=job_id,
            process_type=PROCESS_TYPE,
            status=status,
            message=message,
            payload=payload,
        )
        self._session.add(entry)
        self._session.flush()
        logger.info(
            "audit_recorded",
            extra={"status": status, "audit_id": entry.id, "job_id": job_id},
        )
        return entry
