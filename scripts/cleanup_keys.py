#!/usr/bin/env python3
"""
Delete expired idempotency records once and exit.

Runs the same sweep the API's background sweeper performs every hour, for
deployments that prefer an external scheduler (cron, Kubernetes CronJob).
Expenses are never touched.

Usage:
  python3 scripts/cleanup_keys.py [--config path/to/expense_tracker.yaml]
                                  [--retention-hours 24]
"""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from expense_config import ExpenseTrackerConfig, get_active_config  # noqa: E402
from expense_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from expense_kernel.exceptions import TransientStorageError  # noqa: E402
from expense_kernel.logging_config import configure_logging, get_logger  # noqa: E402
from expense_kernel.services.key_sweeper import KeyExpirySweeper  # noqa: E402

logger = get_logger("scripts.cleanup_keys")


def run(config: ExpenseTrackerConfig, retention_hours: float | None = None) -> int:
    """Sweep once; returns the number of records deleted."""
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_timeout=config.database.pool_timeout_seconds,
        statement_timeout_ms=config.database.statement_timeout_ms,
    )
    try:
        create_tables()
        retention = (
            timedelta(hours=retention_hours)
            if retention_hours is not None
            else config.idempotency.retention
        )
        sweeper = KeyExpirySweeper(get_session_factory(), retention=retention)
        return sweeper.sweep()
    finally:
        reset_engine()


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete expired idempotency keys")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument(
        "--retention-hours",
        type=float,
        default=None,
        help="Override idempotency.retention_hours",
    )
    args = parser.parse_args()

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)

    try:
        removed = run(config, args.retention_hours)
    except TransientStorageError as exc:
        logger.error("cleanup_failed", extra={"error_code": exc.code}, exc_info=True)
        print(f"Cleanup failed: {exc}", file=sys.stderr)
        return 1

    print(f"Removed {removed} expired idempotency key(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
