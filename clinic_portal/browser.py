"""
Browser lifecycle for one scrape-job attempt.

``BrowserSession`` is a context manager that starts Playwright, launches
Chromium with CI-friendly flags, optionally routes traffic through an
upstream proxy, blocks heavy static resources, and yields a fresh page.
Everything it started is closed on exit, on success and on failure alike.
"""

from __future__ import annotations

import re
from typing import Any

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, Route, sync_playwright

from clinic_config.schema import PipelineConfig
from clinic_kernel.logging_config import get_logger

logger = get_logger("portal.browser")

LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})
BLOCKED_URL_PATTERN = re.compile(r"/(analytics|tracking)/", re.IGNORECASE)


def _block_heavy(route: Route) -> None:
    request = route.request
    if request.resource_type in BLOCKED_RESOURCE_TYPES or BLOCKED_URL_PATTERN.search(request.url):
        route.abort()
    else:
        route.continue_()


class BrowserSession:
    """Owns the Playwright driver, browser, context, and page for one job."""

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self.page: Page | None = None

    def launch_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "headless": self._config.headless,
            "args": list(LAUNCH_ARGS),
        }
        if self._config.use_proxy:
            options["proxy"] = {"server": self._config.proxy_server}
        return options

    def __enter__(self) -> Page:
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(**self.launch_options())
            self._context = self._browser.new_context(
                extra_http_headers={"Accept-Encoding": "gzip"},
            )
            if self._config.block_heavy_resources:
                self._context.route("**/*", _block_heavy)
            self.page = self._context.new_page()
        except BaseException:
            self.close()
            raise
        logger.info(
            "browser_started",
            extra={
                "headless": self._config.headless,
                "use_proxy": self._config.use_proxy,
                "block_heavy_resources": self._config.block_heavy_resources,
            },
        )
        return self.page

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release everything that was started; safe to call more than once."""
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                closer()
            except Exception:
                logger.warning("browser_close_failed", exc_info=True, extra={"resource": name})
        self._context = None
        self._browser = None
        self._playwright = None
        self.page = None
        logger.debug("browser_closed")
