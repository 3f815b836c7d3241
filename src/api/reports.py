"""Report API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_current_user, get_report_service
from src.models.user import User
from src.schemas.common import ApiResponse
from src.schemas.report import MonthlyReport, PendingBalanceReport, TotalPaidReport, YearlyReport
from src.services.report_service import ReportService

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Reports = Annotated[ReportService, Depends(get_report_service)]


@router.get("/total-paid", response_model=ApiResponse[TotalPaidReport])
def total_paid(current_user: CurrentUser, reports: Reports):
    return ApiResponse.ok(reports.total_paid(current_user.id))


@router.get("/pending-balance", response_model=ApiResponse[PendingBalanceReport])
def pending_balance(current_user: CurrentUser, reports: Reports):
    return ApiResponse.ok(reports.pending_balance(current_user.id))


@router.get("/monthly/{year}/{month}", response_model=ApiResponse[MonthlyReport])
def monthly_report(year: int, month: int, current_user: CurrentUser, reports: Reports):
    """Debts created in the given month."""
    report = reports.monthly(current_user.id, year, month)
    return ApiResponse.ok(report, f"Monthly report for {report.period.month_name} {year}")


@router.get("/yearly/{year}", response_model=ApiResponse[YearlyReport])
def yearly_report(year: int, current_user: CurrentUser, reports: Reports):
    """Debts created in the given year."""
    return ApiResponse.ok(reports.yearly(current_user.id, year), f"Yearly report for {year}")
