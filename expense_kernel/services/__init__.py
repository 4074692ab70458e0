"""Kernel services: the imperative shell around the domain layer."""

from expense_kernel.services.expense_service import ExpenseService
from expense_kernel.services.idempotent_write_guard import IdempotentWriteGuard
from expense_kernel.services.key_sweeper import KeyExpirySweeper

__all__ = ["ExpenseService", "IdempotentWriteGuard", "KeyExpirySweeper"]
