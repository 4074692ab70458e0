"""
Module: expense_kernel.models.expense
Responsibility: ORM persistence for expenses.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - The amount is stored only as integer minor units (BigInteger).
    - Rows are created only by IdempotentWriteGuard, in the same commit as
      their IdempotencyRecord.  There is no update or delete path.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base
from expense_kernel.db.types import DESCRIPTION_MAX_LENGTH, UTCDateTime
from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.dtos import ExpenseRecord
from expense_kernel.domain.money import MoneyCodec, DEFAULT_CODEC


class Expense(Base):
    """A single recorded expense."""

    __tablename__ = "expenses"

    __table_args__ = (
        Index("idx_expense_category_date", "category", "date"),
        Index("idx_expense_date", "date"),
    )

    # Exact amount in minor units (e.g. paise)
    amount_minor_units: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH),
        nullable=False,
    )

    # When the expense was incurred, as reported by the client
    date: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    # When the row was written; from the injected clock
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Expense {self.id} {self.category} {self.amount_minor_units}>"

    def to_record(self, codec: MoneyCodec = DEFAULT_CODEC) -> ExpenseRecord:
        """Detach into an immutable ExpenseRecord."""
        return ExpenseRecord(
            id=self.id,
            amount=codec.decode(self.amount_minor_units),
            amount_minor_units=self.amount_minor_units,
            category=ExpenseCategory(self.category),
            description=self.description,
            date=self.date,
            created_at=self.created_at,
        )
