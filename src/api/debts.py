"""Debt API endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, Response, status

from src.api.dependencies import get_current_user, get_debt_filters, get_debt_service
from src.models.user import User
from src.schemas.common import ApiResponse, PaginatedResult
from src.schemas.debt import (
    CombinedDebtsView,
    DebtCreate,
    DebtFilters,
    DebtPay,
    DebtResponse,
    DebtStatistics,
    DebtSummary,
    DebtUpdate,
)
from src.services.debt_service import DEFAULT_RECENT_COUNT, DebtService
from src.services.export import MEDIA_TYPES, parse_export_format

router = APIRouter(prefix="/api/v1/debts", tags=["debts"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Debts = Annotated[DebtService, Depends(get_debt_service)]
Filters = Annotated[DebtFilters, Depends(get_debt_filters)]


@router.get("", response_model=ApiResponse[PaginatedResult[DebtResponse]])
def list_debts(current_user: CurrentUser, debts: Debts, filters: Filters):
    """List debts the current user lent."""
    page = debts.list_owned(current_user.id, filters)
    return ApiResponse.ok(page, f"{page.total_items} debts found")


@router.post(
    "",
    response_model=ApiResponse[DebtResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_debt(data: DebtCreate, current_user: CurrentUser, debts: Debts):
    """Create a new debt."""
    debt = debts.create(current_user.id, data)
    return ApiResponse.ok(debt, "Debt created")


# Fixed paths must be registered before /{debt_id}


@router.get("/overdue", response_model=ApiResponse[list[DebtResponse]])
def list_overdue_debts(current_user: CurrentUser, debts: Debts):
    """List pending debts whose due date has passed."""
    items = debts.overdue(current_user.id)
    return ApiResponse.ok(items, f"{len(items)} overdue debts")


@router.get("/recent", response_model=ApiResponse[list[DebtResponse]])
def list_recent_debts(
    current_user: CurrentUser, debts: Debts, count: int = DEFAULT_RECENT_COUNT
):
    """List the most recently created debts (count between 1 and 20)."""
    items = debts.recent(current_user.id, count)
    return ApiResponse.ok(items)


@router.get("/search", response_model=ApiResponse[PaginatedResult[DebtResponse]])
def search_debts(
    current_user: CurrentUser,
    debts: Debts,
    q: str = "",
    page: int = 1,
    page_size: int = 10,
):
    """Search title and description, case-insensitively."""
    results = debts.search(current_user.id, q, page, page_size)
    return ApiResponse.ok(results, f"{results.total_items} debts match '{q.strip()}'")


@router.get("/my-debts", response_model=ApiResponse[PaginatedResult[DebtResponse]])
def list_my_debts(current_user: CurrentUser, debts: Debts, filters: Filters):
    """List debts where the current user is the counterparty."""
    page = debts.list_as_counterparty(current_user.id, filters)
    return ApiResponse.ok(page, f"{page.total_items} debts found")


@router.get("/all-my-debts", response_model=ApiResponse[CombinedDebtsView])
def list_all_my_debts(current_user: CurrentUser, debts: Debts, filters: Filters):
    """Debts lent and debts owed, with totals."""
    return ApiResponse.ok(debts.combined_view(current_user.id, filters))


@router.get("/statistics", response_model=ApiResponse[DebtStatistics])
def get_statistics(current_user: CurrentUser, debts: Debts):
    return ApiResponse.ok(debts.statistics(current_user.id))


@router.get("/summary", response_model=ApiResponse[DebtSummary])
def get_summary(current_user: CurrentUser, debts: Debts):
    """Statistics plus recent and overdue debts for the dashboard."""
    return ApiResponse.ok(debts.summary(current_user.id))


@router.get("/export")
def export_debts(
    current_user: CurrentUser,
    debts: Debts,
    requested_format: Annotated[str, Query(alias="format")] = "json",
):
    """Download all of the user's debts as JSON or CSV."""
    export_format = parse_export_format(requested_format)
    content = debts.export(current_user.id, export_format)
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    filename = f"debts_{timestamp}.{export_format.value}"
    return Response(
        content=content,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{debt_id}", response_model=ApiResponse[DebtResponse])
def get_debt(debt_id: int, current_user: CurrentUser, debts: Debts):
    """Get a specific debt."""
    return ApiResponse.ok(debts.get(debt_id, current_user.id))


@router.put("/{debt_id}", response_model=ApiResponse[DebtResponse])
def update_debt(debt_id: int, data: DebtUpdate, current_user: CurrentUser, debts: Debts):
    """Update a pending debt."""
    debt = debts.update(debt_id, current_user.id, data)
    return ApiResponse.ok(debt, "Debt updated")


@router.delete("/{debt_id}", response_model=ApiResponse[None])
def delete_debt(debt_id: int, current_user: CurrentUser, debts: Debts):
    """Delete a debt."""
    debts.delete(debt_id, current_user.id)
    return ApiResponse.ok(message="Debt deleted")


@router.patch("/{debt_id}/pay", response_model=ApiResponse[DebtResponse])
def pay_debt(
    debt_id: int,
    current_user: CurrentUser,
    debts: Debts,
    data: Annotated[DebtPay | None, Body()] = None,
):
    """Mark a debt as paid."""
    paid_at = data.paid_at if data else None
    debt = debts.pay(debt_id, current_user.id, paid_at)
    return ApiResponse.ok(debt, "Debt marked as paid")


@router.patch("/{debt_id}/unpay", response_model=ApiResponse[DebtResponse])
def unpay_debt(debt_id: int, current_user: CurrentUser, debts: Debts):
    """Mark a paid debt as pending again."""
    debt = debts.unpay(debt_id, current_user.id)
    return ApiResponse.ok(debt, "Debt marked as pending")
