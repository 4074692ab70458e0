"""
expense_api -- HTTP surface for the expense tracker.

FastAPI application exposing expense creation (exactly-once per
``X-Idempotency-Key``), listing, per-category summaries and a health
check.  All persistence goes through ``expense_kernel.services.ExpenseService``.
"""

from expense_api.app import create_app

__all__ = ["create_app"]
