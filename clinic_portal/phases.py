"""
Portal phase state machine.

Contract:
    A portal scrape is a fixed sequence of named phases.  Each phase is a
    callable that receives its timeout in milliseconds and either returns a
    value or raises a ``PortalError``.  ``PhaseRunner`` executes the phases
    in order, converts every outcome into a ``PhaseResult``, retries a
    failed phase while its error is retryable and attempts remain, and
    stops at the first phase that exhausts its attempts by raising that
    phase's typed error.

Invariants enforced:
    - Phases run strictly in order; a phase never starts before its
      predecessor succeeded.
    - Every attempt is bounded by the phase's own timeout, which the
      phase action applies to all of its waits.
    - ``results`` records exactly one PhaseResult per phase that ran.

Failure modes:
    - A raw Playwright error escaping a phase is wrapped in a
      NavigationError for that phase.
    - Non-portal exceptions propagate unchanged.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from playwright.sync_api import Error as PlaywrightError

from clinic_kernel.exceptions import NavigationError, PortalError
from clinic_kernel.logging_config import LogContext, get_logger

logger = get_logger("portal.phases")


class PortalPhase(str, Enum):
    """Named steps of one portal session, in execution order."""

    NAVIGATE = "navigate"
    AWAIT_CHALLENGE = "await_challenge"
    SELECT_CLINIC = "select_clinic"
    LOGIN = "login"
    OPEN_REPORT = "open_report"
    FILTER = "filter"
    EXTRACT = "extract"


@dataclass(frozen=True)
class PhaseStep:
    """One runnable phase: its action, timeout, and attempt ceiling."""

    phase: PortalPhase
    action: Callable[[int], Any]
    timeout_ms: int
    max_attempts: int = 1


@dataclass(frozen=True)
class PhaseResult:
    """Outcome of one phase."""

    phase: PortalPhase
    ok: bool
    attempts: int
    duration_ms: int
    value: Any = None
    error: PortalError | None = None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None


class PhaseRunner:
    """Sequential runner with per-phase bounded retry.

    Args:
        monotonic: Time source for durations (injectable for tests).
        on_failure: Called once with the failing phase and its error before
            the error is raised, e.g. to capture diagnostics.
    """

    def __init__(
        self,
        monotonic: Callable[[], float] = time.monotonic,
        on_failure: Callable[[PortalPhase, PortalError], None] | None = None,
    ) -> None:
        self._monotonic = monotonic
        self._on_failure = on_failure
        self.results: list[PhaseResult] = []

    def run_phase(self, step: PhaseStep) -> PhaseResult:
        """Run one phase to success or exhaustion; never raises PortalError."""
        started = self._monotonic()
        error: PortalError | None = None
        attempt = 0
        with LogContext.bind(phase=step.phase.value):
            while attempt < max(1, step.max_attempts):
                attempt += 1
                try:
                    value = step.action(step.timeout_ms)
                except PortalError as exc:
                    error = exc
                except PlaywrightError as exc:
                    error = NavigationError(step.phase.value, "unexpected", str(exc))
                else:
                    result = PhaseResult(
                        phase=step.phase,
                        ok=True,
                        attempts=attempt,
                        duration_ms=self._elapsed_ms(started),
                        value=value,
                    )
                    logger.info(
                        "phase_succeeded",
                        extra={"attempts": attempt, "duration_ms": result.duration_ms},
                    )
                    return result

                if not error.retryable or attempt >= step.max_attempts:
                    break
                logger.warning(
                    "phase_retry",
                    extra={
                        "attempt": attempt,
                        "max_attempts": step.max_attempts,
                        "error_code": error.code,
                        "error_message": str(error),
                    },
                )

        result = PhaseResult(
            phase=step.phase,
            ok=False,
            attempts=attempt,
            duration_ms=self._elapsed_ms(started),
            error=error,
        )
        logger.warning(
            "phase_failed",
            extra={
                "phase": step.phase.value,
                "attempts": attempt,
                "error_code": result.error_code,
                "error_message": str(error),
            },
        )
        return result

    def run(self, steps: Iterable[PhaseStep]) -> tuple[PhaseResult, ...]:
        """
        Run all phases in order.

        Returns:
            The results of every phase, all successful.

        Raises:
            PortalError: the typed error of the first phase that failed.
        """
        for step in steps:
            result = self.run_phase(step)
            self.results.append(result)
            if not result.ok:
                assert result.error is not None
                if self._on_failure is not None:
                    self._on_failure(step.phase, result.error)
                raise result.error
        return tuple(self.results)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)
