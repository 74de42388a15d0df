#!/usr/bin/env python3
"""
Process queued clinic scrape jobs: claim -> scrape portal -> ingest -> audit.

Runs one bounded batch and exits; an external scheduler invokes it
repeatedly.  A failed job is recorded on the job and in the audit log and
does not change the exit status; only setup failures (configuration,
database) exit non-zero.

Usage:
    python3 scripts/run_scrape_queue.py [--limit N] [--db-url URL] [--config PATH]

Environment:
    DATABASE_URL     store URL (default for --db-url)
    SCRAPER_CONFIG   YAML file with a top-level ``pipeline:`` mapping
    PROCESS_LIMIT, USE_PROXY, PROXY_SERVER, SCRAPER_* overrides
    GITHUB_RUN_ID    recorded as the run id when present
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run one batch of queued clinic scrape jobs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum jobs to process (default: batch_limit from config).",
    )
    parser.add_argument(
        "--db-url",
        default=os.environ.get("DATABASE_URL"),
        help="Database URL (default: $DATABASE_URL).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=os.environ.get("SCRAPER_CONFIG") or None,
        help="Pipeline YAML config (default: $SCRAPER_CONFIG).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.db_url:
        print("ERROR: no database URL (set DATABASE_URL or pass --db-url)", file=sys.stderr)
        return 1
    if args.limit is not None and args.limit < 1:
        print("ERROR: --limit must be at least 1", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    from clinic_batch import BatchOrchestrator, resolve_run_id
    from clinic_config import load_pipeline_config
    from clinic_kernel.db.engine import get_session_factory, init_engine_from_url
    from clinic_kernel.exceptions import ConfigurationError
    from clinic_kernel.logging_config import configure_logging, get_logger
    from clinic_portal import PortalScraper

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    logger = get_logger("scripts.run_scrape_queue")

    try:
        config = load_pipeline_config(args.config)
    except (ConfigurationError, OSError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1
    logger.info(
        "pipeline_config_loaded",
        extra={
            "config_path": str(args.config) if args.config else None,
            "batch_limit": config.batch_limit,
            "challenge_timeout_ms": config.challenge_timeout_ms,
            "row_result_timeout_ms": config.row_result_timeout_ms,
            "use_proxy": config.use_proxy,
        },
    )

    try:
        init_engine_from_url(args.db_url)
    except Exception as e:
        print(f"ERROR: Failed to initialize database: {e}", file=sys.stderr)
        return 1

    orchestrator = BatchOrchestrator(
        session_factory=get_session_factory(),
        config=config,
        scraper=PortalScraper(config),
    )
    try:
        summary = orchestrator.run(limit=args.limit, run_id=resolve_run_id())
    except Exception:
        # Claiming itself failed; individual job failures never reach here.
        logger.exception("batch_aborted")
        return 1

    print(
        f"Run {summary.run_id}: processed={summary.processed} "
        f"completed={summary.completed} failed={summary.failed}"
    )
    for result in summary.results:
        line = f"  {result.job_id} {result.status.value}"
        if result.counts:
            line += f" scraped={result.counts['scraped']} inserted={result.counts['inserted']}"
        if result.error_message:
            line += f" error={result.error_code or 'ERROR'}: {result.error_message}"
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
