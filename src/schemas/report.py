"""Report schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.schemas.debt import DebtResponse


class TotalPaidReport(BaseModel):
    total_paid_amount: Decimal
    total_paid_debts: int
    currency: str
    last_updated: datetime


class PendingBalanceReport(BaseModel):
    total_pending_amount: Decimal
    total_pending_debts: int
    total_overdue_amount: Decimal
    total_overdue_debts: int
    currency: str
    last_updated: datetime


class ReportPeriod(BaseModel):
    year: int
    month: int | None = None
    month_name: str | None = None
    start_date: datetime
    end_date: datetime


class PeriodSummary(BaseModel):
    total_debts: int
    total_amount: Decimal
    paid_debts: int
    paid_amount: Decimal
    pending_debts: int
    pending_amount: Decimal
    overdue_debts: int
    overdue_amount: Decimal


class YearSummary(PeriodSummary):
    average_debt_amount: Decimal
    largest_debt: Decimal
    smallest_debt: Decimal


class DailyBreakdown(BaseModel):
    day: int
    count: int
    total_amount: Decimal
    paid_count: int
    paid_amount: Decimal


class MonthlyBreakdown(BaseModel):
    month: int
    month_name: str
    count: int
    total_amount: Decimal
    paid_count: int
    paid_amount: Decimal
    pending_count: int
    pending_amount: Decimal


class QuarterlyBreakdown(BaseModel):
    quarter: int
    months: str
    count: int
    total_amount: Decimal


class CounterpartyTotal(BaseModel):
    counterparty_id: int
    counterparty_name: str
    count: int
    total_amount: Decimal
    pending_amount: Decimal


class MonthlyReport(BaseModel):
    """Debts created in one calendar month."""

    period: ReportPeriod
    summary: PeriodSummary
    daily_breakdown: list[DailyBreakdown]
    top_debts: list[DebtResponse]
    currency: str
    generated_at: datetime


class YearlyReport(BaseModel):
    """Debts created in one calendar year."""

    period: ReportPeriod
    summary: YearSummary
    monthly_breakdown: list[MonthlyBreakdown]
    quarterly_breakdown: list[QuarterlyBreakdown]
    top_counterparties: list[CounterpartyTotal]
    currency: str
    generated_at: datetime
