"""Expense endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError

from expense_api.schemas import (
    CategoriesEnvelope,
    CategoryTotalResponse,
    ExpenseCreateRequest,
    ExpenseEnvelope,
    ExpenseListEnvelope,
    ExpenseResponse,
    SummaryEnvelope,
)
from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.selectors.expense_selector import SortOrder
from expense_kernel.services.expense_service import ExpenseService

router = APIRouter(prefix="/expenses", tags=["expenses"])

REPLAYED_HEADER = "Idempotent-Replayed"
KEY_HEADER = "Idempotency-Key"


def get_expense_service(request: Request) -> ExpenseService:
    return request.app.state.expense_service


@router.post("", response_model=ExpenseEnvelope, status_code=status.HTTP_201_CREATED)
def create_expense(
    body: ExpenseCreateRequest,
    request: Request,
    response: Response,
    service: ExpenseService = Depends(get_expense_service),
):
    """
    Create an expense, exactly once per idempotency key.

    201 when this request created the expense, 200 when the key had
    already been used and the original expense is returned unchanged.
    """
    max_amount = request.app.state.config.money.max_amount
    if body.amount > max_amount:
        raise RequestValidationError(
            [
                {
                    "loc": ("body", "amount"),
                    "msg": f"Amount must not exceed {max_amount}",
                    "type": "less_than_equal",
                }
            ]
        )

    raw_key = request.headers.get(request.app.state.config.idempotency.header)
    result = service.create_expense(body.to_payload(), idempotency_key=raw_key)

    if result.is_replay:
        response.status_code = status.HTTP_200_OK
    response.headers[KEY_HEADER] = result.idempotency_key
    response.headers[REPLAYED_HEADER] = "true" if result.is_replay else "false"
    return ExpenseEnvelope(data=ExpenseResponse.from_record(result.expense))


@router.get("", response_model=ExpenseListEnvelope)
def list_expenses(
    category: ExpenseCategory | None = Query(None, description="Only this category"),
    sort: SortOrder = Query(SortOrder.DATE_DESC, description="date_desc or date_asc"),
    service: ExpenseService = Depends(get_expense_service),
):
    records = service.list_expenses(category=category, sort=sort)
    return ExpenseListEnvelope(
        data=[ExpenseResponse.from_record(r) for r in records],
        count=len(records),
    )


@router.get("/summary", response_model=SummaryEnvelope)
def expense_summary(service: ExpenseService = Depends(get_expense_service)):
    """Total spend per category, largest first."""
    totals = service.summarize_by_category()
    return SummaryEnvelope(data=[CategoryTotalResponse.from_total(t) for t in totals])


@router.get("/categories", response_model=CategoriesEnvelope)
def expense_categories(service: ExpenseService = Depends(get_expense_service)):
    return CategoriesEnvelope(data=service.categories())


@router.get("/{expense_id}", response_model=ExpenseEnvelope)
def get_expense(expense_id: UUID, service: ExpenseService = Depends(get_expense_service)):
    return ExpenseEnvelope(data=ExpenseResponse.from_record(service.get_expense(expense_id)))
