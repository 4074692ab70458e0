"""
Expense Kernel

The write-side core of the expense tracker:
- Exact decimal to minor-unit money conversion
- Idempotent, exactly-once expense creation
- Atomic expense + idempotency record commits
- Periodic expiry of idempotency records
"""

__version__ = "0.1.0"
