"""Screenshot and HTML artifacts for operator triage of portal failures."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from playwright.sync_api import Page

from clinic_kernel.logging_config import get_logger

logger = get_logger("portal.diagnostics")


def _safe(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]+", "_", name).strip("_")[:80] or "artifact"


def capture_diagnostics(
    page: Page,
    directory: str | Path | None,
    name_prefix: str,
) -> Path | None:
    """
    Save a full-page screenshot and the page HTML.

    Returns the screenshot path, or None when capture is disabled or failed.
    A failed capture is logged and never raised.
    """
    if not directory:
        return None
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    prefix = f"{_safe(name_prefix)}_{stamp}"
    try:
        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        screenshot = out_dir / f"{prefix}.png"
        page.screenshot(path=str(screenshot), full_page=True)
        (out_dir / f"{prefix}.html").write_text(page.content(), encoding="utf-8")
    except Exception:
        logger.warning(
            "diagnostics_capture_failed",
            exc_info=True,
            extra={"name_prefix": prefix},
        )
        return None
    logger.info("diagnostics_captured", extra={"path": str(screenshot)})
    return screenshot
