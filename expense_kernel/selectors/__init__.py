"""Read-only query selectors returning DTOs."""

from expense_kernel.selectors.expense_selector import ExpenseSelector, SortOrder

__all__ = ["ExpenseSelector", "SortOrder"]
