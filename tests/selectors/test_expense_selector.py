"""Tests for ExpenseSelector: filtering, ordering and per-category totals."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.exceptions import ExpenseNotFoundError
from expense_kernel.selectors.expense_selector import ExpenseSelector, SortOrder

JAN = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def seeded(expense_service, make_payload, deterministic_clock):
    """Four expenses on different days, created in a scrambled order."""
    rows = [
        ("k1", "12.00", ExpenseCategory.FOOD, 3),
        ("k2", "40.00", ExpenseCategory.BILLS, 1),
        ("k3", "3.50", ExpenseCategory.FOOD, 7),
        ("k4", "25.25", ExpenseCategory.TRANSPORT, 5),
    ]
    for key, amount, category, day in rows:
        expense_service.create_expense(
            make_payload(
                amount=amount,
                category=category,
                description=f"{category.value} on day {day}",
                date=JAN + timedelta(days=day),
            ),
            key,
        )
        deterministic_clock.advance(60)


@pytest.fixture
def selector(session):
    return ExpenseSelector(session)


class TestListExpenses:
    def test_default_newest_first(self, seeded, selector):
        days = [r.date.day for r in selector.list_expenses()]
        assert days == [8, 6, 4, 2]

    def test_oldest_first(self, seeded, selector):
        days = [r.date.day for r in selector.list_expenses(sort=SortOrder.DATE_ASC)]
        assert days == [2, 4, 6, 8]

    def test_sort_accepts_string(self, seeded, selector):
        assert selector.list_expenses(sort="date_asc")[0].date.day == 2

    def test_filter_by_category(self, seeded, selector):
        records = selector.list_expenses(category=ExpenseCategory.FOOD)
        assert [r.amount for r in records] == [Decimal("3.50"), Decimal("12.00")]

    def test_filter_by_category_string(self, seeded, selector):
        assert len(selector.list_expenses(category="Transport")) == 1

    def test_filter_with_no_matches(self, seeded, selector):
        assert selector.list_expenses(category=ExpenseCategory.HEALTH) == []

    def test_same_date_ordered_by_creation(self, expense_service, make_payload, deterministic_clock, selector):
        for key in ("first", "second", "third"):
            expense_service.create_expense(make_payload(description=key, date=JAN), key)
            deterministic_clock.advance(1)

        assert [r.description for r in selector.list_expenses()] == ["third", "second", "first"]
        assert [r.description for r in selector.list_expenses(sort="date_asc")] == ["first", "second", "third"]

    def test_invalid_sort(self, selector):
        with pytest.raises(ValueError):
            selector.list_expenses(sort="amount")

    def test_invalid_category(self, selector):
        with pytest.raises(ValueError):
            selector.list_expenses(category="Travel")

    def test_amounts_decoded(self, seeded, selector):
        bills = selector.list_expenses(category="Bills")[0]
        assert bills.amount == Decimal("40.00")
        assert bills.amount_minor_units == 4000
        assert bills.display_amount == "40.00"


class TestSummary:
    def test_totals_largest_first(self, seeded, selector):
        summary = selector.summarize_by_category()

        assert [(t.category, t.total, t.count) for t in summary] == [
            (ExpenseCategory.BILLS, Decimal("40.00"), 1),
            (ExpenseCategory.TRANSPORT, Decimal("25.25"), 1),
            (ExpenseCategory.FOOD, Decimal("15.50"), 2),
        ]

    def test_totals_exact_in_minor_units(self, expense_service, make_payload, selector):
        for i in range(10):
            expense_service.create_expense(make_payload(amount=0.1), f"dime-{i}")

        (food,) = selector.summarize_by_category()
        assert food.total_minor_units == 100
        assert food.total == Decimal("1.00")

    def test_empty(self, selector):
        assert selector.summarize_by_category() == []


class TestGetExpense:
    def test_found(self, expense_service, make_payload, selector):
        created = expense_service.create_expense(make_payload(), "abc")
        assert selector.get_expense(created.expense.id).id == created.expense.id

    def test_missing(self, selector):
        missing = uuid4()
        with pytest.raises(ExpenseNotFoundError) as exc_info:
            selector.get_expense(missing)
        assert exc_info.value.expense_id == str(missing)
