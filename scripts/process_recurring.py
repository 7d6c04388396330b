#!/usr/bin/env python3
"""
Process due recurring templates.

One-shot (the administrative trigger): runs a single MANUAL cycle and
prints its JSON summary.  With --serve, runs the periodic scheduler in the
foreground until interrupted.

Usage:
    python3 scripts/process_recurring.py
    python3 scripts/process_recurring.py --database-url sqlite:///ledger.db --create-tables
    python3 scripts/process_recurring.py --now 2024-01-05T03:00:00+00:00
    python3 scripts/process_recurring.py --serve

Exit codes:
    0  cycle ran (per-template errors are reported in the summary)
    1  the cycle could not run (store unavailable, bad configuration)
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_now(value: str) -> datetime:
    """ISO timestamp; a value without offset is taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Materialize due recurring transactions")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--database-url", default=None, help="Overrides database_url")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    parser.add_argument("--now", type=_parse_now, default=None, help="Processing time (ISO 8601)")
    parser.add_argument("--serve", action="store_true", help="Run the periodic scheduler")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    import yaml
    from sqlalchemy.exc import SQLAlchemyError

    from ledger_config import get_active_config
    from ledger_kernel.db.engine import create_tables
    from ledger_kernel.exceptions import LedgerKernelError
    from ledger_kernel.logging_config import configure_logging, get_logger
    from ledger_recurring.orchestrator import RecurringOrchestrator

    configure_logging(level=getattr(logging, args.log_level))
    logger = get_logger("scripts.process_recurring")

    try:
        overrides = {"database_url": args.database_url} if args.database_url else None
        config = get_active_config(config_path=args.config, overrides=overrides)
        orchestrator = RecurringOrchestrator.from_config(config)
        if args.create_tables:
            create_tables()

        if args.serve:
            scheduler = orchestrator.create_scheduler()
            scheduler.start()
            try:
                scheduler.wait()
            except KeyboardInterrupt:
                print("Stopping scheduler...", file=sys.stderr)
            finally:
                scheduler.stop()
            return 0

        summary = orchestrator.process_due_now(now=args.now)
    except (LedgerKernelError, FileNotFoundError, yaml.YAMLError, SQLAlchemyError) as exc:
        logger.error("process_recurring_failed", exc_info=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
