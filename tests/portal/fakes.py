"""
Fake Playwright page for portal tests.

Implements the subset of the sync Page/Locator API the portal components
use.  Time is virtual: every bounded wait advances a FakeMonotonic instead
of sleeping, so timeout paths finish instantly.

Locator keys:
    page.locator(css)              -> css
    page.get_by_placeholder(text)  -> "placeholder=<text>"
    page.get_by_text(text)         -> "text=<text>"
    page.get_by_role(role, name=n) -> "<role>=<n>"
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from datetime import date
from fnmatch import fnmatch
from pathlib import Path

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from clinic_portal.selectors import DEFAULT_SELECTORS


class FakeMonotonic:
    """Callable monotonic clock in seconds."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class FakeLocator:
    def __init__(self, page: FakePage, key: str) -> None:
        self.page = page
        self.key = key

    @property
    def first(self) -> FakeLocator:
        return self

    def is_visible(self) -> bool:
        return self.key in self.page.visible

    def wait_for(self, state: str = "visible", timeout: float | None = None) -> None:
        if self.key not in self.page.visible:
            self.page.clock.advance_ms(timeout or 0)
            raise PlaywrightTimeoutError(f"Timeout waiting for {self.key}")

    def click(self, timeout: float | None = None) -> None:
        self.page.record("click", self.key)
        handler = self.page.click_handlers.get(self.key)
        if handler is not None:
            handler()

    def fill(self, value: str, timeout: float | None = None) -> None:
        self.page.record("fill", self.key, value)

    def press_sequentially(self, text: str, delay: float = 0) -> None:
        self.page.record("type", self.key, text)

    def press(self, key: str) -> None:
        self.page.record("press", self.key, key)

    def check(self, timeout: float | None = None) -> None:
        self.page.record("check", self.key)

    def count(self) -> int:
        return 1 if self.key in self.page.visible else 0

    def text_content(self) -> str | None:
        value = self.page.texts.get(self.key)
        return value() if callable(value) else value

    def evaluate(self, expression: str) -> str:
        return self.page.html.get(self.key, "")


class FakePage:
    def __init__(
        self,
        clock: FakeMonotonic | None = None,
        url: str = "about:blank",
        title: str = "",
    ) -> None:
        self.clock = clock or FakeMonotonic()
        self.url = url
        self.page_title = title
        self.visible: set[str] = set()
        self.texts: dict[str, str | Callable[[], str]] = {}
        self.html: dict[str, str] = {}
        self.actions: list[tuple] = []
        self.waits: list[float] = []
        self.click_handlers: dict[str, Callable[[], None]] = {}
        self.goto_error: Exception | None = None
        self.url_after_goto: str | None = None
        self.calendar: FakeCalendar | None = None
        # Called after every wait_for_timeout; lets a test script page changes.
        self.on_wait: Callable[[FakePage], None] | None = None

    def record(self, *action) -> None:
        self.actions.append(action)

    # -- navigation ---------------------------------------------------------

    def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None) -> None:
        self.record("goto", url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.url_after_goto or url

    def title(self) -> str:
        return self.page_title

    def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(timeout)
        self.clock.advance_ms(timeout)
        if self.on_wait is not None:
            self.on_wait(self)

    def wait_for_url(self, url: str, timeout: float | None = None) -> None:
        if not fnmatch(self.url, url):
            self.clock.advance_ms(timeout or 0)
            raise PlaywrightTimeoutError(f"Timeout waiting for URL {url}")

    def wait_for_selector(self, selector: str, timeout: float | None = None) -> None:
        if selector not in self.visible:
            self.clock.advance_ms(timeout or 0)
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    # -- locators -----------------------------------------------------------

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_placeholder(self, text: str) -> FakeLocator:
        return FakeLocator(self, f"placeholder={text}")

    def get_by_text(self, text: str, exact: bool = False) -> FakeLocator:
        return FakeLocator(self, f"text={text}")

    def get_by_role(self, role: str, name: str | None = None) -> FakeLocator:
        return FakeLocator(self, f"{role}={name}")

    # -- diagnostics --------------------------------------------------------

    def screenshot(self, path: str | None = None, full_page: bool = False) -> bytes:
        data = b"\x89PNG fake"
        if path is not None:
            Path(path).write_bytes(data)
        return data

    def content(self) -> str:
        return f"<html><head><title>{self.page_title}</title></head><body></body></html>"


class FakeCalendar:
    """
    Date picker bound to a FakePage.

    The header label and the visible ``data-day`` cells follow the
    displayed month; next/prev clicks move it unless ``stuck`` is set.
    """

    def __init__(self, page: FakePage, year: int, month: int, stuck: bool = False) -> None:
        self.page = page
        self.year = year
        self.month = month
        self.stuck = stuck
        self._cells: set[str] = set()
        page.visible.add(DEFAULT_SELECTORS.calendar_switch)
        page.texts[DEFAULT_SELECTORS.calendar_switch] = self.label
        page.click_handlers[DEFAULT_SELECTORS.calendar_next] = lambda: self.shift(1)
        page.click_handlers[DEFAULT_SELECTORS.calendar_prev] = lambda: self.shift(-1)
        self._render()

    def label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def shift(self, months: int) -> None:
        if self.stuck:
            return
        index = self.year * 12 + (self.month - 1) + months
        self.year, self.month = divmod(index, 12)
        self.month += 1
        self._render()

    def _render(self) -> None:
        self.page.visible -= self._cells
        days = calendar.monthrange(self.year, self.month)[1]
        self._cells = {
            DEFAULT_SELECTORS.calendar_day_cell.format(
                value=date(self.year, self.month, day).strftime("%d/%m/%Y")
            )
            for day in range(1, days + 1)
        }
        self.page.visible |= self._cells


def portal_page(
    clinic_label: str,
    report_html: str,
    clock: FakeMonotonic | None = None,
    calendar_month: tuple[int, int] = (2026, 1),
) -> FakePage:
    """A page on which every phase succeeds and submit renders ``report_html``."""
    sel = DEFAULT_SELECTORS
    page = FakePage(clock=clock, title="eClinic")
    page.visible |= set(sel.login_form_fields)
    page.visible |= {
        f"placeholder={sel.clinic_placeholder}",
        f"placeholder={sel.username_placeholder}",
        f"placeholder={sel.password_placeholder}",
        f"text={clinic_label}",
        f"button={sel.reports_menu_button}",
        f"link={sel.daily_revenue_link}",
        f"placeholder={sel.start_date_placeholder}",
        f"placeholder={sel.end_date_placeholder}",
        f"button={sel.submit_button}",
    }
    page.visible |= set(sel.select_all_toggles)

    def log_in() -> None:
        page.url = "https://portal.example.test/dashboard"

    def render_report() -> None:
        page.visible.add(sel.result_row)
        page.html[sel.report_table] = report_html

    page.click_handlers[f"button={sel.login_button}"] = log_in
    page.click_handlers[f"button={sel.submit_button}"] = render_report
    page.calendar = FakeCalendar(page, *calendar_month)
    return page
