"""
Exception taxonomy for the clinic report ingestion pipeline.

===============================================================================
HIERARCHY
===============================================================================

    ClinicPipelineError                      code = CLINIC_PIPELINE_ERROR
    +-- ConfigurationError                   code = CONFIGURATION_ERROR
    +-- PortalError                          code = PORTAL_ERROR
    |   +-- ChallengeTimeoutError            code = CHALLENGE_TIMEOUT      (retryable)
    |   +-- NavigationError                  code = NAVIGATION_ERROR       (retryable)
    |   +-- LoginError                       code = LOGIN_ERROR
    +-- RowParseError                        code = ROW_PARSE_ERROR        (row skipped)
    +-- PersistenceError                     code = PERSISTENCE_ERROR      (job fails)
    +-- QueueError                           code = QUEUE_ERROR
        +-- JobNotFoundError                 code = JOB_NOT_FOUND
        +-- ClinicNotFoundError              code = CLINIC_NOT_FOUND
        +-- InvalidJobTransitionError        code = INVALID_JOB_TRANSITION

===============================================================================
HANDLING BOUNDARIES
===============================================================================

    Row boundary (clinic_ingestion.services.ingestion_service):
        RowParseError -> row dropped, skipped counter incremented.

    Job boundary (clinic_batch.services.job_runner):
        Everything else -> browser released, error logged with full
        context, job marked failed with the message retained, one audit
        record written, batch proceeds to the next job.

    ``retryable`` is advisory.  PhaseRunner uses it to decide whether a
    failed portal phase is attempted again; at job level re-enqueueing
    is an external decision.

===============================================================================
"""


class ClinicPipelineError(Exception):
    """
    Base exception for all pipeline errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification and a ``retryable`` hint.
    """

    code: str = "CLINIC_PIPELINE_ERROR"
    retryable: bool = False


class ConfigurationError(ClinicPipelineError):
    """Pipeline configuration could not be loaded or is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key!r}: {reason}")


# Portal exceptions


class PortalError(ClinicPipelineError):
    """Base exception for failures while driving the clinic portal."""

    code: str = "PORTAL_ERROR"


class ChallengeTimeoutError(PortalError):
    """The anti-bot interstitial never cleared within the configured bound."""

    code: str = "CHALLENGE_TIMEOUT"
    retryable = True

    def __init__(self, url: str, timeout_ms: int, last_title: str | None = None):
        self.url = url
        self.timeout_ms = timeout_ms
        self.last_title = last_title
        super().__init__(
            f"Challenge page at {url} did not clear within {timeout_ms}ms "
            f"(last title: {last_title!r})"
        )


class NavigationError(PortalError):
    """An expected portal element could not be located or acted upon."""

    code: str = "NAVIGATION_ERROR"
    retryable = True

    def __init__(self, phase: str, step: str, detail: str = ""):
        self.phase = phase
        self.step = step
        self.detail = detail
        message = f"Navigation failed in phase {phase!r} at step {step!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LoginError(PortalError):
    """Credentials were rejected or the login UI was unexpectedly absent."""

    code: str = "LOGIN_ERROR"

    def __init__(self, clinic_name: str, reason: str):
        self.clinic_name = clinic_name
        self.reason = reason
        super().__init__(f"Login failed for clinic {clinic_name!r}: {reason}")


# Row-level exceptions


class RowParseError(ClinicPipelineError):
    """A single report row could not be normalized. Non-fatal."""

    code: str = "ROW_PARSE_ERROR"

    def __init__(self, field: str, raw_value: str | None, reason: str = ""):
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        message = f"Cannot parse field {field!r} from value {raw_value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceError(ClinicPipelineError):
    """A write to the shared store failed. Fails the whole job."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store write failed during {operation}: {detail}")


# Queue exceptions


class QueueError(ClinicPipelineError):
    """Base exception for scrape-queue errors."""

    code: str = "QUEUE_ERROR"


class JobNotFoundError(QueueError):
    """Scrape job does not exist."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Scrape job not found: {job_id}")


class ClinicNotFoundError(QueueError):
    """The clinic referenced by a scrape job does not exist."""

    code: str = "CLINIC_NOT_FOUND"

    def __init__(self, clinic_id: str):
        self.clinic_id = clinic_id
        super().__init__(f"Clinic not found: {clinic_id}")


class InvalidJobTransitionError(QueueError):
    """A job status transition outside pending->processing->terminal."""

    code: str = "INVALID_JOB_TRANSITION"

    def __init__(self, job_id: str, from_status: str, to_status: str):
        self.job_id = job_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move scrape job {job_id} from {from_status} to {to_status}"
        )
