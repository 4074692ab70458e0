"""Fixed set of expense categories."""

from enum import Enum


class ExpenseCategory(str, Enum):
    """Category an expense is filed under."""

    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    OTHER = "Other"

    @classmethod
    def values(cls) -> list[str]:
        """Category names in declaration order."""
        return [member.value for member in cls]
