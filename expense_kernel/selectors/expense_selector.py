"""
Module: expense_kernel.selectors.expense_selector
Responsibility: Read access to expenses: filtered lists, per-category
    totals and single lookups.
Architecture position: Kernel > Selectors.  May import from models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: never adds, deletes, flushes or commits.
    - Returns frozen DTOs, never ORM instances.
    - Totals are summed as integer minor units in the database and decoded
      once, so aggregation cannot accumulate rounding error.
"""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.dtos import CategoryTotal, ExpenseRecord
from expense_kernel.domain.money import DEFAULT_CODEC, MoneyCodec
from expense_kernel.exceptions import ExpenseNotFoundError
from expense_kernel.models.expense import Expense


class SortOrder(str, Enum):
    """Ordering for expense lists."""

    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"


class ExpenseSelector:
    """
    Query interface for expenses.

    The caller owns the session and its transaction.
    """

    def __init__(self, session: Session, codec: MoneyCodec | None = None):
        self.session = session
        self._codec = codec or DEFAULT_CODEC

    def list_expenses(
        self,
        category: ExpenseCategory | str | None = None,
        sort: SortOrder | str = SortOrder.DATE_DESC,
    ) -> list[ExpenseRecord]:
        """
        List expenses, optionally for one category.

        Args:
            category: Restrict to this category.
            sort: ``date_desc`` (newest first, default) or ``date_asc``.
                Expenses on the same date keep creation order in the
                same direction.

        Raises:
            ValueError: Unknown sort order or category.
        """
        order = SortOrder(sort)
        stmt = select(Expense)
        if category is not None:
            stmt = stmt.where(Expense.category == ExpenseCategory(category).value)

        if order == SortOrder.DATE_ASC:
            stmt = stmt.order_by(Expense.date.asc(), Expense.created_at.asc())
        else:
            stmt = stmt.order_by(Expense.date.desc(), Expense.created_at.desc())

        rows = self.session.execute(stmt).scalars().all()
        return [row.to_record(self._codec) for row in rows]

    def summarize_by_category(self) -> list[CategoryTotal]:
        """Total spend per category, largest first."""
        total = func.sum(Expense.amount_minor_units)
        rows = self.session.execute(
            select(Expense.category, total, func.count(Expense.id))
            .group_by(Expense.category)
            .order_by(total.desc(), Expense.category.asc())
        ).all()

        return [
            CategoryTotal(
                category=ExpenseCategory(category),
                total=self._codec.decode(int(minor_total or 0)),
                total_minor_units=int(minor_total or 0),
                count=count,
            )
            for category, minor_total, count in rows
        ]

    def get_expense(self, expense_id: UUID) -> ExpenseRecord:
        """
        Fetch one expense.

        Raises:
            ExpenseNotFoundError: No expense with that id.
        """
        expense = self.session.get(Expense, expense_id)
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense.to_record(self._codec)
