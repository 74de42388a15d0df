"""
ScrapeJobRunner -- the job boundary for one claimed scrape job.

Contract:
    run(job) never raises for failures of the job itself.  It returns a
    JobRunResult after leaving the job completed or failed, with exactly
    one audit record for the attempt.

Units of work (each its own transaction from the session factory):
    1. Load the clinic and build the portal account.
    2. Scrape (no database transaction is held while the browser runs).
    3. Ingest rows, write the success audit record, mark completed.
       These commit together, so a job is never completed without its rows.
    On any exception from 1-3: log with full context, then in a fresh
    transaction write the failure audit record and mark failed.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from sqlalchemy.orm import Session

from clinic_config.schema import PipelineConfig
from clinic_kernel.db.engine import session_scope
from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.exceptions import ClinicNotFoundError
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.models import Clinic
from clinic_ingestion.domain.types import IngestionCounts
from clinic_ingestion.services.audit_logger import AuditLogger
from clinic_ingestion.services.ingestion_service import IngestionService
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale
from clinic_portal.scraper import ReportScraper
from clinic_portal.types import PortalAccount

from clinic_batch.domain.types import JobRunResult, ScrapeJob, ScrapeJobStatus
from clinic_batch.services.queue_store import QueueStore

logger = get_logger("batch.job_runner")


class ScrapeJobRunner:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: PipelineConfig,
        scraper: ReportScraper,
        clock: Clock | None = None,
        locale: PortalLocale = DEFAULT_LOCALE,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._config = config
        self._scraper = scraper
        self._clock = clock or SystemClock()
        self._locale = locale
        self._monotonic = monotonic

    def run(self, job: ScrapeJob) -> JobRunResult:
        started = self._monotonic()
        with LogContext.bind(job_id=str(job.job_id), clinic_id=str(job.clinic_id)):
            try:
                counts = self._execute(job)
            except Exception as exc:
                return self._fail(job, exc, started)

            logger.info(
                "job_completed",
                extra={**counts.as_payload(), "duration_ms": self._elapsed_ms(started)},
            )
            return JobRunResult(
                job_id=job.job_id,
                clinic_id=job.clinic_id,
                status=ScrapeJobStatus.COMPLETED,
                counts=counts.as_payload(),
                duration_ms=self._elapsed_ms(started),
            )

    def account_for(self, clinic: Clinic) -> PortalAccount:
        return PortalAccount(
            clinic_id=clinic.id,
            clinic_label=clinic.portal_label,
            login_url=clinic.login_url,
            username=clinic.username,
            password=clinic.password_encrypted,
        )

    def _execute(self, job: ScrapeJob) -> IngestionCounts:
        with session_scope(self._session_factory) as session:
            account = self.account_for(self._load_clinic(session, job))

        logger.info(
            "job_started",
            extra={
                "clinic_label": account.clinic_label,
                "start_date": job.start_date,
                "end_date": job.end_date,
            },
        )
        scraped = self._scraper.scrape(account, job.start_date, job.end_date)

        with session_scope(self._session_factory) as session:
            clinic = self._load_clinic(session, job)
            counts = IngestionService(session, clinic, self._config, self._locale).ingest(
                scraped.rows,
            )
            AuditLogger(session, self._config.trace_max_chars).record_success(
                clinic_id=clinic.id,
                job_id=job.job_id,
                counts=counts,
                start_date=job.start_date,
                end_date=job.end_date,
            )
            QueueStore(session, self._clock).mark_completed(job.job_id)
        return counts

    def _fail(self, job: ScrapeJob, exc: Exception, started: float) -> JobRunResult:
        error_code = getattr(exc, "code", None)
        logger.error(
            "job_failed",
            exc_info=exc,
            extra={
                "start_date": job.start_date,
                "end_date": job.end_date,
                "error_kind": type(exc).__name__,
                "error_code": error_code,
                "retryable": getattr(exc, "retryable", False),
            },
        )
        with session_scope(self._session_factory) as session:
            clinic_exists = session.get(Clinic, job.clinic_id) is not None
            AuditLogger(session, self._config.trace_max_chars).record_failure(
                clinic_id=job.clinic_id if clinic_exists else None,
                job_id=job.job_id,
                error=exc,
                start_date=job.start_date,
                end_date=job.end_date,
            )
            QueueStore(session, self._clock).mark_failed(job.job_id, str(exc))

        return JobRunResult(
            job_id=job.job_id,
            clinic_id=job.clinic_id,
            status=ScrapeJobStatus.FAILED,
            error_code=error_code,
            error_message=str(exc),
            duration_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _load_clinic(session: Session, job: ScrapeJob) -> Clinic:
        clinic = session.get(Clinic, job.clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(str(job.clinic_id))
        return clinic

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)
