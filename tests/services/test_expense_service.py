"""
Tests for ExpenseService.

Verifies:
- Create/replay through the service's own transaction boundary
- Missing key handling (generated vs required)
- Key normalization
- Storage failures surface as TransientStorageError and write nothing
- Read operations delegate to the selector
"""

from unittest.mock import patch
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.dtos import WriteStatus
from expense_kernel.exceptions import (
    ExpenseNotFoundError,
    IdempotencyKeyRequiredError,
    InvalidIdempotencyKeyError,
    TransientStorageError,
)
from expense_kernel.services.expense_service import ExpenseService


class TestCreate:
    def test_create_then_replay(self, expense_service, make_payload, count_rows):
        first = expense_service.create_expense(make_payload(), idempotency_key="abc")
        second = expense_service.create_expense(make_payload(), idempotency_key="abc")

        assert first.status == WriteStatus.CREATED
        assert second.status == WriteStatus.REPLAYED
        assert second.expense == first.expense
        assert count_rows() == (1, 1)

    def test_key_whitespace_is_stripped(self, expense_service, make_payload, count_rows):
        first = expense_service.create_expense(make_payload(), idempotency_key="abc")
        second = expense_service.create_expense(make_payload(), idempotency_key="  abc  ")

        assert second.is_replay
        assert second.expense.id == first.expense.id
        assert count_rows() == (1, 1)

    def test_key_too_long(self, expense_service, make_payload, count_rows):
        with pytest.raises(InvalidIdempotencyKeyError):
            expense_service.create_expense(make_payload(), idempotency_key="k" * 256)
        assert count_rows() == (0, 0)


class TestMissingKey:
    def test_generated_when_optional(self, expense_service, make_payload, captured_logs):
        result = expense_service.create_expense(make_payload(), idempotency_key=None)

        assert result.status == WriteStatus.CREATED
        assert UUID(result.idempotency_key).version == 4
        generated = [r for r in captured_logs() if r["message"] == "idempotency_key_generated"]
        assert len(generated) == 1
        assert generated[0]["level"] == "WARNING"

    def test_missing_key_cannot_dedupe(self, expense_service, make_payload, count_rows):
        a = expense_service.create_expense(make_payload())
        b = expense_service.create_expense(make_payload())

        assert a.idempotency_key != b.idempotency_key
        assert count_rows() == (2, 2)

    def test_blank_key_counts_as_missing(self, expense_service, make_payload):
        result = expense_service.create_expense(make_payload(), idempotency_key="   ")
        assert result.idempotency_key.strip() != ""

    def test_rejected_when_required(self, session_factory, sweeper, deterministic_clock, make_payload, count_rows):
        service = ExpenseService(
            session_factory,
            sweeper,
            clock=deterministic_clock,
            require_idempotency_key=True,
            idempotency_header="Idempotency-Key",
        )

        with pytest.raises(IdempotencyKeyRequiredError) as exc_info:
            service.create_expense(make_payload())

        assert exc_info.value.header == "Idempotency-Key"
        assert exc_info.value.code == "IDEMPOTENCY_KEY_REQUIRED"
        assert count_rows() == (0, 0)


class TestStorageFailures:
    def test_commit_failure_is_transient(self, expense_service, make_payload, count_rows):
        with patch.object(
            Session, "commit", side_effect=OperationalError("COMMIT", None, Exception("disk I/O error"))
        ):
            with pytest.raises(TransientStorageError) as exc_info:
                expense_service.create_expense(make_payload(), idempotency_key="abc")

        assert exc_info.value.idempotency_key == "abc"
        assert exc_info.value.code == "TRANSIENT_STORAGE_ERROR"
        assert count_rows() == (0, 0)

    def test_retry_after_failure_creates_once(self, expense_service, make_payload, count_rows):
        with patch.object(
            Session, "commit", side_effect=OperationalError("COMMIT", None, Exception("locked"))
        ):
            with pytest.raises(TransientStorageError):
                expense_service.create_expense(make_payload(), idempotency_key="abc")

        first = expense_service.create_expense(make_payload(), idempotency_key="abc")
        second = expense_service.create_expense(make_payload(), idempotency_key="abc")

        assert first.status == WriteStatus.CREATED
        assert second.expense.id == first.expense.id
        assert count_rows() == (1, 1)


class TestReads:
    def test_list_and_summary(self, expense_service, make_payload):
        expense_service.create_expense(make_payload(amount="10.00"), "a")
        expense_service.create_expense(
            make_payload(amount="5.25", category=ExpenseCategory.TRANSPORT), "b"
        )

        assert len(expense_service.list_expenses()) == 2
        assert [r.description for r in expense_service.list_expenses(category="Transport")] == ["Lunch"]

        summary = expense_service.summarize_by_category()
        assert [(t.category, t.total_minor_units) for t in summary] == [
            (ExpenseCategory.FOOD, 1000),
            (ExpenseCategory.TRANSPORT, 525),
        ]

    def test_get_expense(self, expense_service, make_payload):
        created = expense_service.create_expense(make_payload(), "a")
        assert expense_service.get_expense(created.expense.id) == created.expense

    def test_get_missing_expense(self, expense_service):
        with pytest.raises(ExpenseNotFoundError):
            expense_service.get_expense(uuid4())

    def test_categories(self, expense_service):
        assert expense_service.categories() == [
            "Food",
            "Transport",
            "Shopping",
            "Bills",
            "Entertainment",
            "Health",
            "Other",
        ]


class TestCleanup:
    def test_cleanup_delegates_to_sweeper(self, expense_service, make_payload, deterministic_clock, count_rows):
        expense_service.create_expense(make_payload(), "abc")
        deterministic_clock.advance(hours=25)

        assert expense_service.cleanup_expired_keys() == 1
        assert count_rows() == (1, 0)
