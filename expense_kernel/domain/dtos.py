"""
Data transfer objects crossing the kernel boundary.

Immutable, ORM-free values.  Services return these instead of live ORM
rows so callers never hold a session-bound object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.money import format_amount


@dataclass(frozen=True)
class ExpensePayload:
    """
    A validated create-expense request.

    Validation (positive amount under the configured maximum, category
    membership, description length, parseable date) happens before this
    object is built; the kernel does not re-check it.
    """

    amount: Decimal
    category: ExpenseCategory
    description: str
    date: datetime


@dataclass(frozen=True)
class ExpenseRecord:
    """A persisted expense, with both the decoded and the raw amount."""

    id: UUID
    amount: Decimal
    amount_minor_units: int
    category: ExpenseCategory
    description: str
    date: datetime
    created_at: datetime

    @property
    def display_amount(self) -> str:
        return format_amount(self.amount)


class WriteStatus(str, Enum):
    """Outcome of an idempotent write."""

    CREATED = "created"
    REPLAYED = "replayed"  # Key already committed; original returned
    HEALED = "healed"  # Key pointed at a missing expense; replacement created


@dataclass(frozen=True)
class WriteResult:
    """Result of ``IdempotentWriteGuard.execute``."""

    status: WriteStatus
    expense: ExpenseRecord
    idempotency_key: str

    @property
    def is_replay(self) -> bool:
        return self.status == WriteStatus.REPLAYED


@dataclass(frozen=True)
class CategoryTotal:
    """Aggregate spend for one category."""

    category: ExpenseCategory
    total: Decimal
    total_minor_units: int
    count: int
