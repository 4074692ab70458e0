"""
Module: expense_kernel.models.idempotency_record
Responsibility: ORM persistence for idempotency keys.
Architecture position: Kernel > Models.  May import from db/.

Invariants enforced:
    - ``key`` is unique (uq_idempotency_key).  This constraint is the only
      synchronization point between concurrent writers with the same key:
      the loser's INSERT fails with IntegrityError at flush.
    - One record maps to exactly one expense.
    - Records are never updated.  They are deleted by the expiry sweep once
      older than the retention window.

Failure modes:
    - IntegrityError on duplicate key.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.db.types import IDEMPOTENCY_KEY_MAX_LENGTH, UTCDateTime


class IdempotencyRecord(Base):
    """Maps a client idempotency key to the expense it created."""

    __tablename__ = "idempotency_records"

    __table_args__ = (
        UniqueConstraint("key", name="uq_idempotency_key"),
        Index("idx_idempotency_created_at", "created_at"),
    )

    key: Mapped[str] = mapped_column(
        String(IDEMPOTENCY_KEY_MAX_LENGTH),
        nullable=False,
    )

    expense_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<IdempotencyRecord {self.key} -> {self.expense_id}>"
