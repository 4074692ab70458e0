"""
KeyExpirySweeper -- periodic deletion of expired idempotency records.

Contract:
    ``sweep()`` deletes every IdempotencyRecord created more than
    ``retention`` ago and returns how many were removed.  ``tick()`` is the
    scheduled form: failures are logged and retried on the next tick,
    never raised.  ``start()`` / ``stop()`` run ticks on a daemon thread.

Expiry trade-off:
    Once a key's record is swept, a very late retry with that key creates
    a new expense.  The retention window (24 hours by default) bounds the
    table's growth at the cost of dedup protection for such retries.

Concurrency:
    One short DELETE per sweep in its own session.  No lock is shared with
    IdempotentWriteGuard; a guard that already read a record keeps the
    expense reference it captured even if the row is deleted afterwards.

Non-goals:
    - NOT a distributed scheduler; every process may run its own sweeper
      and the DELETE is harmless when repeated.
    - Does NOT delete expenses.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.exceptions import TransientStorageError
from expense_kernel.logging_config import get_logger
from expense_kernel.models.idempotency_record import IdempotencyRecord

logger = get_logger("services.key_sweeper")

DEFAULT_RETENTION = timedelta(hours=24)
DEFAULT_TICK_INTERVAL_SECONDS = 3600


class KeyExpirySweeper:
    """Deletes idempotency records older than the retention window."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        retention: timedelta = DEFAULT_RETENTION,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
    ):
        if retention <= timedelta(0):
            raise ValueError(f"retention must be positive, got {retention}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._retention = retention
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def retention(self) -> timedelta:
        return self._retention

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def sweep(self) -> int:
        """
        Delete expired records now.

        Returns:
            Number of records removed.

        Raises:
            TransientStorageError: The delete did not commit.
        """
        cutoff = self._clock.now() - self._retention
        session = self._session_factory()
        try:
            result = session.execute(
                delete(IdempotencyRecord)
                .where(IdempotencyRecord.created_at < cutoff)
                .execution_options(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise TransientStorageError("sweep_idempotency_records") from exc
        finally:
            session.close()

        removed = result.rowcount or 0
        logger.info(
            "idempotency_records_swept",
            extra={"removed": removed, "cutoff": cutoff},
        )
        return removed

    def tick(self) -> int:
        """Run one sweep, logging instead of raising on failure."""
        try:
            return self.sweep()
        except Exception:
            logger.exception("key_sweep_failed")
            return 0

    def start(self) -> None:
        """Start sweeping on a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="idempotency-key-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "key_sweeper_started",
            extra={
                "tick_interval_seconds": self._tick_interval,
                "retention_seconds": self._retention.total_seconds(),
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current sweep to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("key_sweeper_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)
