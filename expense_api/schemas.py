"""
Request and response models for the expense endpoints.

Requests are validated here and converted to kernel DTOs; responses are
built from kernel DTOs and serialised with camelCase aliases.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from expense_kernel.db.types import DESCRIPTION_MAX_LENGTH
from expense_kernel.domain.categories import ExpenseCategory
from expense_kernel.domain.dtos import CategoryTotal, ExpensePayload, ExpenseRecord
from expense_kernel.domain.money import format_amount, to_minor_units
from expense_kernel.exceptions import InvalidAmountError


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class ExpenseCreateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Expense amount in major units")
    category: ExpenseCategory = Field(..., description="Expense category")
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    date: datetime = Field(..., description="When the expense happened (ISO 8601)")

    @field_validator("amount")
    @classmethod
    def amount_in_minor_units(cls, v: Decimal) -> Decimal:
        # Must encode exactly and round to at least one minor unit
        try:
            minor_units = to_minor_units(v)
        except InvalidAmountError as exc:
            raise ValueError("Amount has too many significant digits") from exc
        if minor_units < 1:
            raise ValueError("Amount must be at least 0.01")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    def to_payload(self) -> ExpensePayload:
        return ExpensePayload(
            amount=self.amount,
            category=self.category,
            description=self.description,
            date=self.date,
        )


# Responses


class ExpenseResponse(CamelModel):
    id: UUID
    amount: str
    amount_minor_units: int
    category: ExpenseCategory
    description: str
    date: datetime
    created_at: datetime

    @classmethod
    def from_record(cls, record: ExpenseRecord) -> "ExpenseResponse":
        return cls(
            id=record.id,
            amount=record.display_amount,
            amount_minor_units=record.amount_minor_units,
            category=record.category,
            description=record.description,
            date=record.date,
            created_at=record.created_at,
        )


class CategoryTotalResponse(CamelModel):
    category: ExpenseCategory
    total: str
    total_minor_units: int
    count: int

    @classmethod
    def from_total(cls, total: CategoryTotal) -> "CategoryTotalResponse":
        return cls(
            category=total.category,
            total=format_amount(total.total),
            total_minor_units=total.total_minor_units,
            count=total.count,
        )


class ExpenseEnvelope(BaseModel):
    success: bool = True
    data: ExpenseResponse


class ExpenseListEnvelope(BaseModel):
    success: bool = True
    data: list[ExpenseResponse]
    count: int


class SummaryEnvelope(BaseModel):
    success: bool = True
    data: list[CategoryTotalResponse]


class CategoriesEnvelope(BaseModel):
    success: bool = True
    data: list[str]


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


class ErrorDetail(BaseModel):
    message: str
    code: str
    details: Any | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: ErrorDetail
