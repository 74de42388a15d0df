"""
ChallengeAwareSession -- reach the portal login form through an anti-bot
interstitial.

Responsibility:
    Navigate to the clinic's login URL and wait, bounded, until the
    interstitial has cleared.  The clearing moment is not observable through
    any single signal, so three are OR'd on every poll:

        login_form   a known login-form field is visible
        url_changed  the page left the login URL (and is not a challenge URL)
        title        the page has a non-empty title matching no known
                     "please wait" phrase

    The interstitial has been seen to reappear once right after clearing,
    so ``await_challenge`` settles briefly and runs the detection loop a
    second time under a shorter bound before handing over to login.

Failure modes:
    - ChallengeTimeoutError (retryable) when a loop exceeds its bound.  A
      diagnostic screenshot + HTML is captured first when a diagnostics
      directory is configured.
    - NavigationError when the login URL cannot be loaded at all.

Resource ownership:
    The page belongs to the BrowserSession that created it; this class
    never closes it.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from urllib.parse import urlsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import ChallengeTimeoutError, NavigationError
from clinic_kernel.logging_config import get_logger
from clinic_portal.diagnostics import capture_diagnostics
from clinic_portal.selectors import DEFAULT_SELECTORS, PortalSelectors

logger = get_logger("portal.session")

# Pause between the first clear and the re-appearance check.
SETTLE_MS = 1_500


def _url_key(url: str) -> str:
    parts = urlsplit(url or "")
    return f"{parts.scheme}://{parts.netloc.lower()}{parts.path.rstrip('/')}"


class ChallengeAwareSession:
    """Drives one page from the login URL to a visible login form."""

    def __init__(
        self,
        page: Page,
        login_url: str,
        config: PipelineConfig,
        selectors: PortalSelectors = DEFAULT_SELECTORS,
        *,
        monotonic: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
        diagnostics_prefix: str = "challenge",
    ) -> None:
        self.page = page
        self.login_url = login_url
        self._config = config
        self._selectors = selectors
        self._monotonic = monotonic
        self._rng = rng or random.Random()
        self._diagnostics_prefix = diagnostics_prefix

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def navigate(self, timeout_ms: int) -> str:
        """
        Open the login URL.

        Navigation completion is lenient: a slow or partially failed load is
        logged and tolerated as long as the browser left about:blank.
        """
        try:
            self.page.goto(self.login_url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning(
                "login_navigation_slow",
                extra={"url": self.login_url, "timeout_ms": timeout_ms},
            )
        except PlaywrightError as exc:
            if self.page.url in ("", "about:blank"):
                raise NavigationError("navigate", "goto", str(exc)) from exc
            logger.warning(
                "login_navigation_partial",
                extra={"url": self.login_url, "error_message": str(exc)},
            )
        return self.page.url

    def await_challenge(self, timeout_ms: int) -> str:
        """Wait for the interstitial to clear, then re-check once under a shorter bound."""
        first = self.wait_until_clear(timeout_ms)
        self.page.wait_for_timeout(SETTLE_MS)
        second = self.wait_until_clear(
            min(timeout_ms, self._config.challenge_recheck_timeout_ms)
        )
        logger.info(
            "challenge_cleared",
            extra={"first_signal": first, "recheck_signal": second},
        )
        return second

    # ------------------------------------------------------------------
    # Detection loop
    # ------------------------------------------------------------------

    def wait_until_clear(self, timeout_ms: int) -> str:
        """
        Poll the clear signals with a jittered interval until one fires.

        Returns:
            The name of the signal that fired.

        Raises:
            ChallengeTimeoutError: the bound elapsed first.
        """
        started = self._monotonic()
        deadline = started + timeout_ms / 1000
        polls = 0
        while True:
            polls += 1
            signal = self.cleared_signal()
            if signal is not None:
                logger.debug(
                    "challenge_signal",
                    extra={
                        "signal": signal,
                        "polls": polls,
                        "waited_ms": int((self._monotonic() - started) * 1000),
                    },
                )
                return signal
            remaining_ms = (deadline - self._monotonic()) * 1000
            if remaining_ms <= 0:
                break
            interval_ms = self._rng.uniform(
                self._config.challenge_poll_min_ms, self._config.challenge_poll_max_ms,
            )
            self.page.wait_for_timeout(min(interval_ms, remaining_ms))

        last_title = self._title()
        logger.error(
            "challenge_timeout",
            extra={
                "url": self.page.url,
                "title": last_title,
                "timeout_ms": timeout_ms,
                "polls": polls,
            },
        )
        capture_diagnostics(self.page, self._config.diagnostics_dir, self._diagnostics_prefix)
        raise ChallengeTimeoutError(self.page.url, timeout_ms, last_title)

    def cleared_signal(self) -> str | None:
        """Name of the first clear signal currently observed, else None."""
        if self._login_form_visible():
            return "login_form"
        if self._left_login_url():
            return "url_changed"
        if self._title_cleared():
            return "title"
        return None

    def _login_form_visible(self) -> bool:
        for selector in self._selectors.login_form_fields:
            try:
                if self.page.locator(selector).first.is_visible():
                    return True
            except PlaywrightError:
                # Execution context destroyed mid-navigation; try next poll.
                return False
        return False

    def _left_login_url(self) -> bool:
        current = self.page.url or ""
        if current in ("", "about:blank"):
            return False
        if any(marker in current for marker in self._selectors.challenge_url_markers):
            return False
        return _url_key(current) != _url_key(self.login_url)

    def _title_cleared(self) -> bool:
        title = self._title()
        if not title:
            return False
        lowered = title.lower()
        return not any(phrase in lowered for phrase in self._selectors.challenge_titles)

    def _title(self) -> str | None:
        try:
            return self.page.title().strip()
        except PlaywrightError:
            return None
