"""
ReportNavigator -- drive an authenticated portal page to the rendered
daily revenue report.

Contract:
    Each public method is one portal phase (or part of one) and bounds every
    wait it performs by the timeout it is given.  Each step has one narrow
    fallback:

        select_clinic    click the typed suggestion, else press Enter
        login            dashboard URL wait is lenient unless the login
                         form is still showing
        select_date      click the day cell by data attribute, else type
                         the date into the input
        wait_for_results no row within the bound is an empty report

Failure modes:
    - NavigationError (retryable) when an expected element never appears.
    - LoginError when the login form is absent or still showing after
      submit (credentials rejected).
"""

from __future__ import annotations

from datetime import date

from playwright.sync_api import Locator, Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import LoginError, NavigationError
from clinic_kernel.logging_config import get_logger
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale
from clinic_portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from clinic_portal.table_extractor import ExtractedTable, TableExtractor

logger = get_logger("portal.navigator")

# Month clicks per calendar pass and total passes.
MAX_MONTH_CLICKS = 12
MAX_CALENDAR_PASSES = 3
CALENDAR_ANIMATION_MS = 200


class ReportNavigator:
    """Portal UI steps from clinic selection to the extracted report table."""

    def __init__(
        self,
        page: Page,
        config: PipelineConfig,
        selectors: PortalSelectors = DEFAULT_SELECTORS,
        locale: PortalLocale = DEFAULT_LOCALE,
        extractor: TableExtractor | None = None,
    ) -> None:
        self.page = page
        self._config = config
        self._selectors = selectors
        self._locale = locale
        self._extractor = extractor or TableExtractor()

    # ------------------------------------------------------------------
    # Login page
    # ------------------------------------------------------------------

    def select_clinic(self, clinic_label: str, timeout_ms: int) -> str:
        """Type the clinic label key by key and pick the matching suggestion."""
        field = self.page.get_by_placeholder(self._selectors.clinic_placeholder).first
        self._wait_visible(field, timeout_ms, "select_clinic", "clinic_field")
        field.click()
        field.fill("")
        # The suggestion list only reacts to keystroke events.
        field.press_sequentially(clinic_label, delay=self._config.typing_delay_ms)

        option = self.page.get_by_text(clinic_label, exact=True).first
        try:
            option.wait_for(state="visible", timeout=timeout_ms)
            option.click()
            return "suggestion"
        except PlaywrightTimeoutError:
            logger.warning(
                "clinic_suggestion_missing",
                extra={"clinic_label": clinic_label, "fallback": "enter"},
            )
            field.press("Enter")
            return "enter"

    def login(self, clinic_label: str, username: str, password: str, timeout_ms: int) -> str:
        """Fill credentials, submit, and wait for the dashboard."""
        user_field = self.page.get_by_placeholder(self._selectors.username_placeholder).first
        try:
            user_field.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise LoginError(clinic_label, "login form is not present") from None

        user_field.fill(username)
        self.page.get_by_placeholder(self._selectors.password_placeholder).first.fill(password)
        self.page.get_by_role("button", name=self._selectors.login_button).first.click()

        try:
            self.page.wait_for_url(self._selectors.dashboard_url_glob, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            if self._login_form_still_showing():
                reason = self._login_error_text() or "still on the login page after submit"
                raise LoginError(clinic_label, reason) from None
            logger.warning("dashboard_url_not_reached", extra={"url": self.page.url})
        return self.page.url

    # ------------------------------------------------------------------
    # Report page
    # ------------------------------------------------------------------

    def open_report(self, timeout_ms: int) -> None:
        """Open the reports menu and the daily revenue report."""
        menu = self.page.get_by_role("button", name=self._selectors.reports_menu_button)
        self._wait_visible(menu, timeout_ms, "open_report", "reports_menu")
        menu.first.click()

        link = self.page.get_by_role("link", name=self._selectors.daily_revenue_link)
        self._wait_visible(link, timeout_ms, "open_report", "daily_revenue_link")
        link.first.click()

        start_field = self.page.get_by_placeholder(self._selectors.start_date_placeholder)
        self._wait_visible(start_field, timeout_ms, "open_report", "report_form")

    def apply_filters(self, start: date, end: date, timeout_ms: int) -> dict[str, str]:
        """Set the date range, tick every select-all toggle, and submit."""
        methods = {
            "start": self.select_date(start, self._selectors.start_date_placeholder, timeout_ms),
            "end": self.select_date(end, self._selectors.end_date_placeholder, timeout_ms),
        }
        for toggle_selector in self._selectors.select_all_toggles:
            toggle = self.page.locator(toggle_selector)
            self._wait_visible(toggle, timeout_ms, "filter", toggle_selector)
            toggle.first.check(timeout=timeout_ms)

        submit = self.page.get_by_role("button", name=self._selectors.submit_button)
        self._wait_visible(submit, timeout_ms, "filter", "submit")
        submit.first.click()
        logger.info(
            "report_filters_applied",
            extra={"start_date": start, "end_date": end, "date_methods": methods},
        )
        return methods

    def select_date(self, target: date, placeholder: str, timeout_ms: int) -> str:
        """
        Pick ``target`` in the date picker opened from the given input.

        Returns "day_cell" when the calendar was used, "typed" when the
        fallback text entry was used.
        """
        field = self.page.get_by_placeholder(placeholder)
        self._wait_visible(field, timeout_ms, "filter", placeholder)
        field.first.click()

        switch = self.page.locator(self._selectors.calendar_switch).first
        try:
            switch.wait_for(state="visible", timeout=timeout_ms)
            if self._navigate_calendar(target):
                cell = self.page.locator(
                    self._selectors.calendar_day_cell.format(
                        value=self._locale.day_cell_value(target)
                    )
                )
                if cell.count() > 0:
                    cell.first.click(timeout=timeout_ms)
                    return "day_cell"
        except PlaywrightTimeoutError:
            pass

        logger.warning(
            "calendar_fallback_typed",
            extra={"placeholder": placeholder, "target_date": target},
        )
        field.first.fill(self._locale.fallback_input_value(target), timeout=timeout_ms)
        return "typed"

    def _navigate_calendar(self, target: date) -> bool:
        """Click next/prev until the calendar shows the target month (bounded)."""
        for _ in range(MAX_CALENDAR_PASSES):
            displayed = self._locale.parse_calendar_label(self._calendar_label())
            if displayed is None:
                logger.warning(
                    "calendar_label_unreadable",
                    extra={"label": self._calendar_label()},
                )
                return False
            delta = self._locale.month_delta(displayed, target)
            if delta == 0:
                return True
            button = self.page.locator(
                self._selectors.calendar_next if delta > 0 else self._selectors.calendar_prev
            ).first
            for _ in range(min(abs(delta), MAX_MONTH_CLICKS)):
                button.click()
                self.page.wait_for_timeout(CALENDAR_ANIMATION_MS)
        displayed = self._locale.parse_calendar_label(self._calendar_label())
        return displayed is not None and self._locale.month_delta(displayed, target) == 0

    def _calendar_label(self) -> str:
        return (self.page.locator(self._selectors.calendar_switch).first.text_content() or "").strip()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def wait_for_results(self, timeout_ms: int) -> bool:
        """True when at least one result row rendered; False means an empty report."""
        try:
            self.page.wait_for_selector(self._selectors.result_row, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.info("report_empty", extra={"timeout_ms": timeout_ms})
            return False
        return True

    def extract(self, timeout_ms: int) -> ExtractedTable:
        """Wait for rows, then flatten the rendered report table."""
        if not self.wait_for_results(timeout_ms):
            return ExtractedTable(headers=(), rows=())
        table = self.page.locator(self._selectors.report_table).first
        html = table.evaluate("el => el.outerHTML")
        extracted = self._extractor.extract(html)
        logger.info(
            "report_extracted",
            extra={"row_count": len(extracted.rows), "column_count": len(extracted.headers)},
        )
        return extracted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wait_visible(self, locator: Locator, timeout_ms: int, phase: str, step: str) -> None:
        try:
            locator.first.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise NavigationError(phase, step, f"not visible within {timeout_ms}ms") from None

    def _login_form_still_showing(self) -> bool:
        password = self.page.get_by_placeholder(self._selectors.password_placeholder).first
        return password.is_visible()

    def _login_error_text(self) -> str | None:
        body = (self.page.locator("body").first.text_content() or "").lower()
        for needle in self._selectors.login_error_texts:
            if needle in body:
                return f"portal reported: {needle!r}"
        return None
