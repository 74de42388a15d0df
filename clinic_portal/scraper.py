"""
PortalScraper -- compose the portal phases for one clinic and date range.

    navigate -> await_challenge -> select_clinic -> login
             -> open_report -> filter -> extract

The browser is scoped to one ``scrape()`` call and released on every exit
path by ``BrowserSession``.  ``scrape_page`` runs the same phases against
a caller-supplied page, which is how the phases are exercised in tests.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date
from typing import Protocol

from playwright.sync_api import Page

from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import ChallengeTimeoutError, PortalError
from clinic_kernel.logging_config import get_logger
from clinic_portal.browser import BrowserSession
from clinic_portal.diagnostics import capture_diagnostics
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale
from clinic_portal.navigator import ReportNavigator
from clinic_portal.phases import PhaseRunner, PhaseStep, PortalPhase
from clinic_portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from clinic_portal.session import ChallengeAwareSession
from clinic_portal.table_extractor import ExtractedTable
from clinic_portal.types import PortalAccount, ScrapeResult

logger = get_logger("portal.scraper")


class ReportScraper(Protocol):
    """Anything that can produce report rows for a clinic and date range."""

    def scrape(self, account: PortalAccount, start: date, end: date) -> ScrapeResult: ...


class PortalScraper:
    """Playwright-backed ReportScraper for the clinic portal."""

    def __init__(
        self,
        config: PipelineConfig,
        selectors: PortalSelectors = DEFAULT_SELECTORS,
        locale: PortalLocale = DEFAULT_LOCALE,
        browser_factory: Callable[[PipelineConfig], BrowserSession] = BrowserSession,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._selectors = selectors
        self._locale = locale
        self._browser_factory = browser_factory
        self._monotonic = monotonic

    def scrape(self, account: PortalAccount, start: date, end: date) -> ScrapeResult:
        with self._browser_factory(self._config) as page:
            return self.scrape_page(page, account, start, end)

    def scrape_page(
        self,
        page: Page,
        account: PortalAccount,
        start: date,
        end: date,
    ) -> ScrapeResult:
        prefix = f"clinic_{account.clinic_id}"
        session = ChallengeAwareSession(
            page,
            account.login_url,
            self._config,
            self._selectors,
            monotonic=self._monotonic,
            diagnostics_prefix=f"{prefix}_challenge",
        )
        navigator = ReportNavigator(page, self._config, self._selectors, self._locale)

        def on_failure(phase: PortalPhase, error: PortalError) -> None:
            # The session captures its own artifact on challenge timeout.
            if not isinstance(error, ChallengeTimeoutError):
                capture_diagnostics(page, self._config.diagnostics_dir, f"{prefix}_{phase.value}")

        runner = PhaseRunner(monotonic=self._monotonic, on_failure=on_failure)
        results = runner.run(self.build_steps(session, navigator, account, start, end))

        extracted: ExtractedTable = results[-1].value
        logger.info(
            "portal_scrape_finished",
            extra={
                "row_count": len(extracted.rows),
                "start_date": start,
                "end_date": end,
                "phase_attempts": {r.phase.value: r.attempts for r in results},
            },
        )
        return ScrapeResult(rows=extracted.rows, headers=extracted.headers, phases=results)

    def build_steps(
        self,
        session: ChallengeAwareSession,
        navigator: ReportNavigator,
        account: PortalAccount,
        start: date,
        end: date,
    ) -> list[PhaseStep]:
        cfg = self._config
        retries = cfg.phase_max_attempts
        return [
            PhaseStep(PortalPhase.NAVIGATE, session.navigate, cfg.navigation_timeout_ms, retries),
            PhaseStep(PortalPhase.AWAIT_CHALLENGE, session.await_challenge, cfg.challenge_timeout_ms),
            PhaseStep(
                PortalPhase.SELECT_CLINIC,
                lambda t: navigator.select_clinic(account.clinic_label, t),
                cfg.element_timeout_ms,
                retries,
            ),
            PhaseStep(
                PortalPhase.LOGIN,
                lambda t: navigator.login(account.clinic_label, account.username, account.password, t),
                cfg.element_timeout_ms,
            ),
            PhaseStep(PortalPhase.OPEN_REPORT, navigator.open_report, cfg.element_timeout_ms, retries),
            PhaseStep(
                PortalPhase.FILTER,
                lambda t: navigator.apply_filters(start, end, t),
                cfg.element_timeout_ms,
                retries,
            ),
            PhaseStep(PortalPhase.EXTRACT, navigator.extract, cfg.row_result_timeout_ms),
        ]
