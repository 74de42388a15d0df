"""Tests for the portal phase runner."""

import pytest
from playwright.sync_api import Error as PlaywrightError

from clinic_kernel.exceptions import LoginError, NavigationError
from clinic_portal.phases import PhaseRunner, PhaseStep, PortalPhase

from tests.portal.fakes import FakeMonotonic


class ScriptedAction:
    """Raises the queued errors in order, then returns ``value``."""

    def __init__(self, *errors, value="ok", clock=None, cost_ms=0):
        self.errors = list(errors)
        self.value = value
        self.timeouts: list[int] = []
        self.clock = clock
        self.cost_ms = cost_ms

    def __call__(self, timeout_ms):
        self.timeouts.append(timeout_ms)
        if self.clock is not None:
            self.clock.advance_ms(self.cost_ms)
        if self.errors:
            raise self.errors.pop(0)
        return self.value


class TestRunPhase:
    def test_success_first_attempt(self):
        action = ScriptedAction(value=42)
        result = PhaseRunner().run_phase(PhaseStep(PortalPhase.LOGIN, action, 5_000))

        assert result.ok
        assert result.value == 42
        assert result.attempts == 1
        assert action.timeouts == [5_000]

    def test_retryable_error_is_retried(self):
        action = ScriptedAction(NavigationError("open_report", "reports_menu"), value="done")
        result = PhaseRunner().run_phase(
            PhaseStep(PortalPhase.OPEN_REPORT, action, 1_000, max_attempts=2),
        )

        assert result.ok
        assert result.attempts == 2
        assert result.value == "done"

    def test_attempts_are_bounded(self):
        action = ScriptedAction(*[NavigationError("filter", "submit") for _ in range(5)])
        result = PhaseRunner().run_phase(
            PhaseStep(PortalPhase.FILTER, action, 1_000, max_attempts=3),
        )

        assert not result.ok
        assert result.attempts == 3
        assert len(action.timeouts) == 3
        assert result.error_code == "NAVIGATION_ERROR"

    def test_login_error_is_not_retried(self):
        action = ScriptedAction(LoginError("Klinik Sehat", "portal reported: 'salah'"))
        result = PhaseRunner().run_phase(
            PhaseStep(PortalPhase.LOGIN, action, 1_000, max_attempts=3),
        )

        assert not result.ok
        assert result.attempts == 1
        assert isinstance(result.error, LoginError)

    def test_playwright_error_is_wrapped(self):
        action = ScriptedAction(PlaywrightError("Target page, context or browser has been closed"))
        result = PhaseRunner().run_phase(PhaseStep(PortalPhase.EXTRACT, action, 1_000))

        assert isinstance(result.error, NavigationError)
        assert result.error.phase == "extract"
        assert result.error.step == "unexpected"

    def test_other_exceptions_propagate(self):
        action = ScriptedAction(KeyError("boom"))
        with pytest.raises(KeyError):
            PhaseRunner().run_phase(PhaseStep(PortalPhase.EXTRACT, action, 1_000))

    def test_duration_uses_injected_clock(self):
        clock = FakeMonotonic()
        action = ScriptedAction(clock=clock, cost_ms=2_500)
        result = PhaseRunner(monotonic=clock).run_phase(
            PhaseStep(PortalPhase.NAVIGATE, action, 10_000),
        )
        assert result.duration_ms == 2_500


class TestRun:
    def test_runs_all_phases_in_order(self):
        order = []

        def step(phase):
            return PhaseStep(phase, lambda t: order.append(phase) or phase.value, 1_000)

        results = PhaseRunner().run([step(p) for p in PortalPhase])

        assert order == list(PortalPhase)
        assert [r.phase for r in results] == list(PortalPhase)
        assert all(r.ok for r in results)

    def test_stops_at_first_failure_and_raises(self):
        later = ScriptedAction()
        runner = PhaseRunner()
        steps = [
            PhaseStep(PortalPhase.NAVIGATE, ScriptedAction(), 1_000),
            PhaseStep(PortalPhase.LOGIN, ScriptedAction(LoginError("Klinik", "rejected")), 1_000),
            PhaseStep(PortalPhase.OPEN_REPORT, later, 1_000),
        ]

        with pytest.raises(LoginError):
            runner.run(steps)

        assert later.timeouts == []
        assert [r.phase for r in runner.results] == [PortalPhase.NAVIGATE, PortalPhase.LOGIN]
        assert runner.results[-1].ok is False

    def test_on_failure_called_once_before_raise(self):
        calls = []
        runner = PhaseRunner(on_failure=lambda phase, error: calls.append((phase, error.code)))
        steps = [
            PhaseStep(
                PortalPhase.FILTER,
                ScriptedAction(NavigationError("filter", "submit"), NavigationError("filter", "submit")),
                1_000,
                max_attempts=2,
            ),
        ]

        with pytest.raises(NavigationError):
            runner.run(steps)

        assert calls == [(PortalPhase.FILTER, "NAVIGATION_ERROR")]

    def test_phase_context_in_logs(self, captured_logs):
        PhaseRunner().run([PhaseStep(PortalPhase.SELECT_CLINIC, ScriptedAction(), 1_000)])

        record = next(r for r in captured_logs() if r["message"] == "phase_succeeded")
        assert record["phase"] == "select_clinic"
