"""Reports: groupings over a user's already-fetched debts."""

import calendar
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from src.schemas.debt import DebtFilters, DebtResponse
from src.schemas.report import (
    CounterpartyTotal,
    DailyBreakdown,
    MonthlyBreakdown,
    MonthlyReport,
    PendingBalanceReport,
    PeriodSummary,
    QuarterlyBreakdown,
    ReportPeriod,
    TotalPaidReport,
    YearlyReport,
    YearSummary,
)
from src.services.debt_service import DebtService
from src.services.exceptions import ValidationError

FIRST_REPORT_YEAR = 2020
TOP_DEBTS = 5
TOP_COUNTERPARTIES = 5
QUARTER_LABELS = {
    1: "January - March",
    2: "April - June",
    3: "July - September",
    4: "October - December",
}


def _total(debts: list[DebtResponse]) -> Decimal:
    return sum((d.amount for d in debts), Decimal("0"))


def _period_summary(debts: list[DebtResponse]) -> dict:
    paid = [d for d in debts if d.paid]
    pending = [d for d in debts if not d.paid]
    overdue = [d for d in debts if d.is_overdue]
    return {
        "total_debts": len(debts),
        "total_amount": _total(debts),
        "paid_debts": len(paid),
        "paid_amount": _total(paid),
        "pending_debts": len(pending),
        "pending_amount": _total(pending),
        "overdue_debts": len(overdue),
        "overdue_amount": _total(overdue),
    }


class ReportService:
    """Builds report views on top of DebtService."""

    def __init__(self, debt_service: DebtService):
        self.debt_service = debt_service
        self.currency = debt_service.settings.default_currency

    def total_paid(self, user_id: int) -> TotalPaidReport:
        stats = self.debt_service.statistics(user_id)
        return TotalPaidReport(
            total_paid_amount=stats.paid_amount,
            total_paid_debts=stats.paid_debts,
            currency=stats.currency,
            last_updated=datetime.now(UTC),
        )

    def pending_balance(self, user_id: int) -> PendingBalanceReport:
        stats = self.debt_service.statistics(user_id)
        return PendingBalanceReport(
            total_pending_amount=stats.pending_amount,
            total_pending_debts=stats.pending_debts,
            total_overdue_amount=stats.overdue_amount,
            total_overdue_debts=stats.overdue_debts,
            currency=stats.currency,
            last_updated=datetime.now(UTC),
        )

    def monthly(self, user_id: int, year: int, month: int) -> MonthlyReport:
        """Debts created during ``year``/``month``."""
        self._validate_year(year)
        if month < 1 or month > 12:
            raise ValidationError("Invalid month")

        start = datetime(year, month, 1, tzinfo=UTC)
        days_in_month = calendar.monthrange(year, month)[1]
        end = start + timedelta(days=days_in_month) - timedelta(microseconds=1)
        debts = self._debts_created_between(user_id, start, end)

        by_day: dict[int, list[DebtResponse]] = defaultdict(list)
        for debt in debts:
            by_day[debt.created_at.day].append(debt)

        daily = [
            DailyBreakdown(
                day=day,
                count=len(group),
                total_amount=_total(group),
                paid_count=sum(1 for d in group if d.paid),
                paid_amount=_total([d for d in group if d.paid]),
            )
            for day, group in sorted(by_day.items())
        ]

        return MonthlyReport(
            period=ReportPeriod(
                year=year,
                month=month,
                month_name=calendar.month_name[month],
                start_date=start,
                end_date=end,
            ),
            summary=PeriodSummary(**_period_summary(debts)),
            daily_breakdown=daily,
            top_debts=sorted(debts, key=lambda d: d.amount, reverse=True)[:TOP_DEBTS],
            currency=self.currency,
            generated_at=datetime.now(UTC),
        )

    def yearly(self, user_id: int, year: int) -> YearlyReport:
        """Debts created during ``year``."""
        self._validate_year(year)

        start = datetime(year, 1, 1, tzinfo=UTC)
        end = datetime(year + 1, 1, 1, tzinfo=UTC) - timedelta(microseconds=1)
        debts = self._debts_created_between(user_id, start, end)

        by_month: dict[int, list[DebtResponse]] = defaultdict(list)
        for debt in debts:
            by_month[debt.created_at.month].append(debt)

        monthly = []
        for month, group in sorted(by_month.items()):
            paid = [d for d in group if d.paid]
            pending = [d for d in group if not d.paid]
            monthly.append(
                MonthlyBreakdown(
                    month=month,
                    month_name=calendar.month_name[month],
                    count=len(group),
                    total_amount=_total(group),
                    paid_count=len(paid),
                    paid_amount=_total(paid),
                    pending_count=len(pending),
                    pending_amount=_total(pending),
                )
            )

        quarterly = []
        for quarter, label in QUARTER_LABELS.items():
            group = [d for d in debts if (d.created_at.month - 1) // 3 + 1 == quarter]
            quarterly.append(
                QuarterlyBreakdown(
                    quarter=quarter, months=label, count=len(group), total_amount=_total(group)
                )
            )

        amounts = [d.amount for d in debts]
        summary = YearSummary(
            **_period_summary(debts),
            average_debt_amount=(
                (sum(amounts, Decimal("0")) / len(amounts)).quantize(Decimal("0.01"))
                if amounts
                else Decimal("0")
            ),
            largest_debt=max(amounts, default=Decimal("0")),
            smallest_debt=min(amounts, default=Decimal("0")),
        )

        return YearlyReport(
            period=ReportPeriod(year=year, start_date=start, end_date=end),
            summary=summary,
            monthly_breakdown=monthly,
            quarterly_breakdown=quarterly,
            top_counterparties=self._top_counterparties(debts),
            currency=self.currency,
            generated_at=datetime.now(UTC),
        )

    def _debts_created_between(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[DebtResponse]:
        return self.debt_service.all_owned(user_id, DebtFilters(from_date=start, to_date=end))

    def _top_counterparties(self, debts: list[DebtResponse]) -> list[CounterpartyTotal]:
        groups: dict[int, list[DebtResponse]] = defaultdict(list)
        for debt in debts:
            if debt.counterparty_id is not None:
                groups[debt.counterparty_id].append(debt)

        totals = [
            CounterpartyTotal(
                counterparty_id=counterparty_id,
                counterparty_name=group[0].counterparty_name or "",
                count=len(group),
                total_amount=_total(group),
                pending_amount=_total([d for d in group if not d.paid]),
            )
            for counterparty_id, group in groups.items()
        ]
        totals.sort(key=lambda t: t.total_amount, reverse=True)
        return totals[:TOP_COUNTERPARTIES]

    def _validate_year(self, year: int) -> None:
        if year < FIRST_REPORT_YEAR or year > datetime.now(UTC).year + 1:
            raise ValidationError("Invalid year")
