"""
ExpenseService -- the kernel surface used by the HTTP layer.

Responsibility:
    Owns the transaction boundary around IdempotentWriteGuard (one
    session, one commit per create), decides what happens when a request
    carries no idempotency key, exposes the key expiry sweep, and fronts
    the read-only selectors.

Architecture position:
    Kernel > Services.  Receives a session factory, never a session, so
    each call runs in its own unit of work and the service is safe to
    share between threads.

Missing idempotency keys:
    ``require_idempotency_key=False`` generates a server-side key.  The
    request still succeeds but a client retry cannot be deduplicated,
    because the retry gets a different key.  ``True`` rejects the request
    with IdempotencyKeyRequiredError instead.

Failure modes:
    - InvalidAmountError, propagated from the codec; nothing written.
    - TransientStorageError; nothing written, retry with the same key.
    - IdempotencyKeyRequiredError / InvalidIdempotencyKeyError.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.dtos import CategoryTotal, ExpensePayload, ExpenseRecord, WriteResult
from expense_kernel.domain.money import DEFAULT_CODEC, MoneyCodec
from expense_kernel.exceptions import IdempotencyKeyRequiredError, TransientStorageError
from expense_kernel.logging_config import get_logger
from expense_kernel.selectors.expense_selector import ExpenseSelector, SortOrder
from expense_kernel.services.idempotent_write_guard import IdempotentWriteGuard
from expense_kernel.services.key_sweeper import KeyExpirySweeper
from expense_kernel.utils.idempotency import (
    generate_idempotency_key,
    normalize_idempotency_key,
)

logger = get_logger("services.expense")


class ExpenseService:
    """
    Create and query expenses.

    Guarantees:
        - Each create commits the expense and its idempotency record
          together or not at all.
        - Replays with a committed key return the original expense.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        sweeper: KeyExpirySweeper,
        clock: Clock | None = None,
        codec: MoneyCodec | None = None,
        require_idempotency_key: bool = False,
        idempotency_header: str = "X-Idempotency-Key",
    ):
        self._session_factory = session_factory
        self._sweeper = sweeper
        self._clock = clock or SystemClock()
        self._codec = codec or DEFAULT_CODEC
        self._require_key = require_idempotency_key
        self._idempotency_header = idempotency_header

    @property
    def sweeper(self) -> KeyExpirySweeper:
        return self._sweeper

    # Writes ---------------------------------------------------------------

    def create_expense(
        self,
        payload: ExpensePayload,
        idempotency_key: str | None = None,
    ) -> WriteResult:
        """
        Create an expense exactly once for ``idempotency_key``.

        Args:
            payload: Validated expense data.
            idempotency_key: Client key; see module docstring when absent.

        Returns:
            WriteResult; ``is_replay`` tells the caller whether this key
            had already been committed.
        """
        key = normalize_idempotency_key(idempotency_key)
        if key is None:
            if self._require_key:
                raise IdempotencyKeyRequiredError(self._idempotency_header)
            key = generate_idempotency_key()
            logger.warning("idempotency_key_generated", extra={"idempotency_key": key})

        session = self._session_factory()
        try:
            guard = IdempotentWriteGuard(session, self._clock, self._codec)
            result = guard.execute(key, payload)
            try:
                session.commit()
            except IntegrityError:
                # Uniqueness lost at commit time: re-run, which now finds the winner
                session.rollback()
                logger.warning("commit_idempotency_conflict", extra={"idempotency_key": key})
                result = guard.execute(key, payload)
                self._commit_or_raise(session, key)
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error(
                    "expense_commit_failed",
                    extra={"idempotency_key": key},
                    exc_info=True,
                )
                raise TransientStorageError("create_expense", key) from exc
            return result
        finally:
            session.close()

    def cleanup_expired_keys(self) -> int:
        """Delete idempotency records past retention; returns how many."""
        return self._sweeper.sweep()

    # Reads ----------------------------------------------------------------

    def list_expenses(
        self,
        category: ExpenseCategory | str | None = None,
        sort: SortOrder | str = SortOrder.DATE_DESC,
    ) -> list[ExpenseRecord]:
        with self._read_session() as session:
            return ExpenseSelector(session, self._codec).list_expenses(category, sort)

    def summarize_by_category(self) -> list[CategoryTotal]:
        with self._read_session() as session:
            return ExpenseSelector(session, self._codec).summarize_by_category()

    def get_expense(self, expense_id: UUID) -> ExpenseRecord:
        with self._read_session() as session:
            return ExpenseSelector(session, self._codec).get_expense(expense_id)

    def categories(self) -> list[str]:
        return ExpenseCategory.values()

    # Internal helpers -----------------------------------------------------

    def _commit_or_raise(self, session: Session, key: str) -> None:
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise TransientStorageError("create_expense", key) from exc

    def _read_session(self) -> Session:
        # Session is a context manager that closes on exit
        return self._session_factory()
