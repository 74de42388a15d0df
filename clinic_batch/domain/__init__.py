"""Pure batch domain: job statuses and result DTOs."""

from clinic_batch.domain.types import (
    ALLOWED_TRANSITIONS,
    OPEN_STATUSES,
    BatchRunSummary,
    JobRunResult,
    ScrapeJob,
    ScrapeJobStatus,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "BatchRunSummary",
    "JobRunResult",
    "OPEN_STATUSES",
    "ScrapeJob",
    "ScrapeJobStatus",
]
