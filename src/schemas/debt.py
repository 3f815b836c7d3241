"""Debt schemas."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from src.models.enums import DebtOrderField, DebtStatus, OrderDirection
from src.schemas.common import PaginatedResult


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DebtCreate(BaseModel):
    """Create a debt."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=1000)
    amount: Decimal = Field(..., max_digits=18, decimal_places=2)
    currency: str | None = Field(None, max_length=3)
    counterparty_id: int | None = None
    due_date: datetime | None = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        return value.upper() if value else None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class DebtUpdate(DebtCreate):
    """Replace the editable fields of a pending debt."""


class DebtPay(BaseModel):
    """Mark a debt as paid, optionally at an explicit time."""

    paid_at: datetime | None = None

    @field_validator("paid_at")
    @classmethod
    def paid_at_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class DebtFilters(BaseModel):
    """Filter, ordering and paging options for debt listings.

    Out-of-range paging values and unknown ordering fields are coerced to
    their defaults rather than rejected.
    """

    paid: bool | None = None
    counterparty_id: int | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    currency: str | None = None
    overdue: bool | None = None
    search: str | None = None
    order_by: DebtOrderField = DebtOrderField.CREATED_AT
    order_direction: OrderDirection = OrderDirection.DESC
    page: int = 1
    page_size: int = 10

    @field_validator("order_by", mode="before")
    @classmethod
    def parse_order_by(cls, value: Any) -> DebtOrderField:
        if isinstance(value, DebtOrderField):
            return value
        return DebtOrderField.parse(value)

    @field_validator("order_direction", mode="before")
    @classmethod
    def parse_order_direction(cls, value: Any) -> OrderDirection:
        if isinstance(value, OrderDirection):
            return value
        return OrderDirection.parse(value)

    @field_validator("page", mode="before")
    @classmethod
    def coerce_page(cls, value: Any) -> int:
        page = int(value) if value is not None else 1
        return max(page, 1)

    @field_validator("page_size", mode="before")
    @classmethod
    def coerce_page_size(cls, value: Any) -> int:
        size = int(value) if value is not None else 10
        return size if 1 <= size <= 100 else 10

    @field_validator("currency", "search")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str | None) -> str | None:
        return value.upper() if value else None

    @field_validator("from_date", "to_date")
    @classmethod
    def dates_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class DebtResponse(BaseModel):
    """Debt joined with both parties, plus derived display fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None
    amount: Decimal
    currency: str
    paid: bool
    due_date: datetime | None
    paid_at: datetime | None
    created_at: datetime
    updated_at: datetime
    owner_id: int
    owner_name: str
    owner_email: str
    counterparty_id: int | None
    counterparty_name: str | None
    counterparty_email: str | None

    @field_validator("due_date", "paid_at", "created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @computed_field
    @property
    def status(self) -> DebtStatus:
        return DebtStatus.PAID if self.paid else DebtStatus.PENDING

    @computed_field
    @property
    def is_overdue(self) -> bool:
        return not self.paid and self.due_date is not None and self.due_date < datetime.now(UTC)

    @computed_field
    @property
    def days_until_due(self) -> int | None:
        if self.due_date is None:
            return None
        return (self.due_date.date() - datetime.now(UTC).date()).days

    @computed_field
    @property
    def formatted_amount(self) -> str:
        return f"{self.amount:,.2f} {self.currency}"

    @classmethod
    def from_debt(cls, debt) -> "DebtResponse":
        """Flatten a Debt and its loaded owner/counterparty into a response."""
        counterparty = debt.counterparty
        return cls(
            id=debt.id,
            title=debt.title,
            description=debt.description,
            amount=debt.amount,
            currency=debt.currency,
            paid=debt.paid,
            due_date=debt.due_date,
            paid_at=debt.paid_at,
            created_at=debt.created_at,
            updated_at=debt.updated_at,
            owner_id=debt.owner_id,
            owner_name=debt.owner.full_name,
            owner_email=debt.owner.email,
            counterparty_id=debt.counterparty_id,
            counterparty_name=counterparty.full_name if counterparty else None,
            counterparty_email=counterparty.email if counterparty else None,
        )


class DebtStatistics(BaseModel):
    """Aggregate counts and sums over one user's debts."""

    total_debts: int = 0
    pending_debts: int = 0
    paid_debts: int = 0
    overdue_debts: int = 0
    total_amount: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    overdue_amount: Decimal = Decimal("0")
    currency: str
    last_updated: datetime


class DebtSummary(BaseModel):
    """Dashboard summary."""

    statistics: DebtStatistics
    recent_debts: list[DebtResponse]
    overdue_debts: list[DebtResponse]
    last_updated: datetime


class DebtGroup(BaseModel):
    """One side of the combined view: a page plus the filtered total."""

    data: PaginatedResult[DebtResponse]
    total_amount: Decimal


class CombinedSummary(BaseModel):
    total_lent: Decimal
    total_owed: Decimal
    net_balance: Decimal
    last_updated: datetime


class CombinedDebtsView(BaseModel):
    """Debts the caller lent and debts the caller owes, side by side."""

    debts_i_lent: DebtGroup
    debts_i_owe: DebtGroup
    summary: CombinedSummary
