"""ORM models. Importing this package registers every table on Base.metadata."""

from expense_kernel.models.expense import Expense
from expense_kernel.models.idempotency_record import IdempotencyRecord

__all__ = ["Expense", "IdempotencyRecord"]
