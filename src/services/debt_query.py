"""Filtering, ordering and pagination of debt listings."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session, joinedload

from src.models.debt import Debt
from src.models.enums import DebtOrderField, OrderDirection
from src.schemas.common import PaginatedResult
from src.schemas.debt import DebtFilters, DebtResponse


class DebtPerspective(str, Enum):
    """Which side of a debt the caller is on."""

    OWNER = "owner"
    COUNTERPARTY = "counterparty"


ORDER_COLUMNS = {
    DebtOrderField.AMOUNT: Debt.amount,
    DebtOrderField.DUE_DATE: Debt.due_date,
    DebtOrderField.TITLE: Debt.title,
    DebtOrderField.PAID: Debt.paid,
    DebtOrderField.UPDATED_AT: Debt.updated_at,
    DebtOrderField.CREATED_AT: Debt.created_at,
}


def overdue_clause(now: datetime):
    """Pending, with a due date strictly before ``now``."""
    return and_(Debt.paid.is_(False), Debt.due_date.isnot(None), Debt.due_date < now)


def apply_debt_filters(
    query: Query, filters: DebtFilters, now: datetime, include_counterparty: bool = True
) -> Query:
    """AND together every filter that is set."""
    if filters.paid is not None:
        query = query.filter(Debt.paid.is_(filters.paid))
    if include_counterparty and filters.counterparty_id is not None:
        query = query.filter(Debt.counterparty_id == filters.counterparty_id)
    if filters.min_amount is not None:
        query = query.filter(Debt.amount >= filters.min_amount)
    if filters.max_amount is not None:
        query = query.filter(Debt.amount <= filters.max_amount)
    if filters.from_date is not None:
        query = query.filter(Debt.created_at >= filters.from_date)
    if filters.to_date is not None:
        query = query.filter(Debt.created_at <= filters.to_date)
    if filters.currency:
        query = query.filter(func.upper(Debt.currency) == filters.currency)
    if filters.overdue:
        query = query.filter(overdue_clause(now))
    if filters.search:
        term = filters.search
        query = query.filter(
            or_(
                Debt.title.icontains(term, autoescape=True),
                and_(
                    Debt.description.isnot(None),
                    Debt.description.icontains(term, autoescape=True),
                ),
            )
        )
    return query


def apply_ordering(query: Query, filters: DebtFilters) -> Query:
    """Order by the requested field, then by id so pages never overlap."""
    column = ORDER_COLUMNS.get(filters.order_by, Debt.created_at)
    if filters.order_direction == OrderDirection.ASC:
        return query.order_by(column.asc(), Debt.id.asc())
    return query.order_by(column.desc(), Debt.id.desc())


def build_debt_query(
    db: Session,
    user_id: int,
    filters: DebtFilters,
    perspective: DebtPerspective,
    now: datetime,
) -> Query:
    """Filtered, unordered query anchored on the caller's side of the debt.

    From the counterparty side the counterparty filter is ignored, since
    the caller is already pinned as the counterparty.
    """
    query = db.query(Debt)
    if perspective == DebtPerspective.OWNER:
        query = query.filter(Debt.owner_id == user_id)
    else:
        query = query.filter(Debt.counterparty_id == user_id)
    return apply_debt_filters(
        query, filters, now, include_counterparty=perspective == DebtPerspective.OWNER
    )


def with_parties(query: Query) -> Query:
    return query.options(joinedload(Debt.owner), joinedload(Debt.counterparty))


def paginate_debts(query: Query, filters: DebtFilters) -> PaginatedResult[DebtResponse]:
    """Count the filtered set, then fetch the requested page."""
    total_items = query.order_by(None).count()
    offset = (filters.page - 1) * filters.page_size
    debts = (
        with_parties(apply_ordering(query, filters))
        .offset(offset)
        .limit(filters.page_size)
        .all()
    )
    return PaginatedResult[DebtResponse].build(
        items=[DebtResponse.from_debt(debt) for debt in debts],
        total_items=total_items,
        page=filters.page,
        page_size=filters.page_size,
    )


def fetch_all(query: Query, filters: DebtFilters) -> list[DebtResponse]:
    """Every matching debt in the requested order, without paging."""
    debts = with_parties(apply_ordering(query, filters)).all()
    return [DebtResponse.from_debt(debt) for debt in debts]


def sum_amount(query: Query) -> Decimal:
    total = query.order_by(None).with_entities(func.coalesce(func.sum(Debt.amount), 0)).scalar()
    return Decimal(str(total or 0))
