#!/usr/bin/env python3
"""
Enqueue today's scrape job for every active clinic.

"Today" is the business day in the configured timezone (Asia/Jakarta by
default).  Public holidays enqueue nothing; clinics with an open job for
the same day are skipped.

Usage:
    python3 scripts/enqueue_today.py [--db-url URL] [--date YYYY-MM-DD] [--config PATH]
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import date
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Enqueue today's clinic scrape jobs.")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("DATABASE_URL"),
        help="Database URL (default: $DATABASE_URL).",
    )
    parser.add_argument(
        "--date",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Business day to enqueue (YYYY-MM-DD). Default: today in the configured timezone.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=os.environ.get("SCRAPER_CONFIG") or None,
        help="Pipeline YAML config (default: $SCRAPER_CONFIG).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.db_url:
        print("ERROR: no database URL (set DATABASE_URL or pass --db-url)", file=sys.stderr)
        return 1

    from clinic_batch.services.enqueue import enqueue_day
    from clinic_config import load_pipeline_config
    from clinic_kernel.db.engine import init_engine_from_url, session_scope
    from clinic_kernel.domain.clock import SystemClock
    from clinic_kernel.exceptions import ConfigurationError

    try:
        config = load_pipeline_config(args.config)
    except (ConfigurationError, OSError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    clock = SystemClock()
    day = args.date or clock.today(config.timezone)

    init_engine_from_url(args.db_url)
    with session_scope() as session:
        result = enqueue_day(session, day, clock)

    if result.holiday:
        print(f"{day} is a public holiday; nothing enqueued.")
        return 0
    print(f"{day}: enqueued {len(result.enqueued)} job(s), skipped {result.skipped_clinics} clinic(s) with open jobs.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
