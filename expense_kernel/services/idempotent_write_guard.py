"""
IdempotentWriteGuard -- exactly-once expense creation per idempotency key.

Responsibility:
    Applies a create-expense write at most once per client idempotency
    key, no matter how often the request is retried or how many copies
    arrive concurrently.  Replays return the originally created expense.

Architecture position:
    Kernel > Services -- imperative shell, called by ExpenseService inside
    a session whose commit the caller owns.

Per-key state machine:
    Unseen    -> execute() creates Expense + IdempotencyRecord  -> Committed
    Committed -> execute() returns the stored Expense, no write, payload
                 is neither re-validated nor re-applied
    Expired   -> the sweep deleted the record; the key is Unseen again and
                 a late resubmission creates a NEW expense

Concurrency:
    No in-process lock.  The UNIQUE constraint on
    ``idempotency_records.key`` decides the race: the loser's INSERT fails
    with IntegrityError at flush, the loser rolls back (its expense row
    goes with it) and re-reads the winner's expense.  This holds across
    threads, event loops and separate server processes alike.

Failure modes:
    - InvalidAmountError: raised by the codec before anything is written.
    - TransientStorageError: any other storage failure.  The session is
      rolled back, so neither row exists; retrying with the same key is
      safe.
    - DataInconsistency: the key's record points at a missing expense.
      Logged, the stale record is removed and the key is re-pointed at a
      freshly created expense (status HEALED).  Never raised.
"""

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock, SystemClock, to_utc
from expense_kernel.domain.dtos import ExpensePayload, WriteResult, WriteStatus
from expense_kernel.domain.money import DEFAULT_CODEC, MoneyCodec
from expense_kernel.exceptions import DataInconsistencyError, TransientStorageError
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.models.expense import Expense
from expense_kernel.models.idempotency_record import IdempotencyRecord

logger = get_logger("services.write_guard")


class IdempotentWriteGuard:
    """
    Exactly-once expense writer.

    Contract:
        ``execute(key, payload)`` returns a ``WriteResult`` whose expense
        is the one and only expense ever created for ``key`` (until the
        key expires).

    Guarantees:
        - The expense and its idempotency record are flushed in the same
          transaction; both commit or neither does.
        - The amount is encoded exactly once, before any row is written.
        - A lost uniqueness race resolves to the winner's expense rather
          than an error.

    Non-goals:
        - Does NOT call ``session.commit()``; the caller owns the boundary.
        - Does NOT validate the payload (already validated upstream).
        - Does NOT compare replayed payloads with the original.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        codec: MoneyCodec | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._codec = codec or DEFAULT_CODEC

    def execute(self, key: str, payload: ExpensePayload) -> WriteResult:
        """
        Create the expense for ``key`` or return the one already created.

        Args:
            key: Opaque, non-empty idempotency key.
            payload: Validated expense data.

        Returns:
            WriteResult with status CREATED, REPLAYED or HEALED.

        Raises:
            InvalidAmountError: Amount cannot be encoded; nothing written.
            TransientStorageError: Write failed and was rolled back.
        """
        with LogContext.bind(idempotency_key=key):
            return self._execute(key, payload)

    def _execute(self, key: str, payload: ExpensePayload) -> WriteResult:
        try:
            existing = self._find_record(key)
            expense = self._load_expense(existing)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("idempotency_lookup_failed", exc_info=True)
            raise TransientStorageError("idempotency_lookup", key) from exc

        stale: IdempotencyRecord | None = None
        if existing is not None:
            if expense is not None:
                logger.info("expense_replayed", extra={"expense_id": str(expense.id)})
                return WriteResult(
                    status=WriteStatus.REPLAYED,
                    expense=expense.to_record(self._codec),
                    idempotency_key=key,
                )
            stale = existing
            logger.warning(
                "data_inconsistency_detected",
                exc_info=DataInconsistencyError(key, str(existing.expense_id)),
            )

        # Encode before touching the session: a bad amount writes nothing
        amount_minor_units = self._codec.encode(payload.amount)
        now = self._clock.now()

        expense = Expense(
            id=uuid4(),
            amount_minor_units=amount_minor_units,
            category=payload.category.value,
            description=payload.description,
            date=to_utc(payload.date),
            created_at=now,
        )

        try:
            if stale is not None:
                # Delete must hit the database before the replacement INSERT
                # reuses the key, or the unique constraint would reject it.
                self._session.delete(stale)
                self._session.flush()

            self._session.add(expense)
            self._session.flush()

            self._session.add(
                IdempotencyRecord(key=key, expense_id=expense.id, created_at=now)
            )
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            logger.warning("concurrent_idempotency_conflict")
            return self._resolve_conflict(key)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("expense_write_failed", exc_info=True)
            raise TransientStorageError("create_expense", key) from exc

        status = WriteStatus.HEALED if stale is not None else WriteStatus.CREATED
        logger.info(
            "expense_created",
            extra={
                "expense_id": str(expense.id),
                "category": expense.category,
                "amount_minor_units": amount_minor_units,
                "status": status.value,
            },
        )
        return WriteResult(
            status=status,
            expense=expense.to_record(self._codec),
            idempotency_key=key,
        )

    def _resolve_conflict(self, key: str) -> WriteResult:
        """Return the expense committed by whoever won the race for ``key``."""
        try:
            winner = self._find_record(key)
            expense = self._load_expense(winner)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise TransientStorageError("create_expense", key) from exc

        if expense is None:
            logger.error("concurrent_winner_not_found")
            raise TransientStorageError("create_expense", key)

        logger.info(
            "expense_replayed",
            extra={"expense_id": str(expense.id), "concurrent": True},
        )
        return WriteResult(
            status=WriteStatus.REPLAYED,
            expense=expense.to_record(self._codec),
            idempotency_key=key,
        )

    def _find_record(self, key: str) -> IdempotencyRecord | None:
        return self._session.execute(
            select(IdempotencyRecord).where(IdempotencyRecord.key == key)
        ).scalar_one_or_none()

    def _load_expense(self, record: IdempotencyRecord | None) -> Expense | None:
        if record is None:
            return None
        # Always hit the database: an identity-mapped copy may outlive its row
        return self._session.get(Expense, record.expense_id, populate_existing=True)
