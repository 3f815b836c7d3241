"""Debt service: business rules, cache-aside reads and invalidation."""

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.models.debt import Debt
from src.models.enums import DebtOrderField, ExportFormat, OrderDirection
from src.models.user import User
from src.schemas.common import PaginatedResult
from src.schemas.debt import (
    CombinedDebtsView,
    CombinedSummary,
    DebtCreate,
    DebtFilters,
    DebtGroup,
    DebtResponse,
    DebtStatistics,
    DebtSummary,
    DebtUpdate,
)
from src.services.cache import DynamoDBCacheService, debt_key, user_stats_key
from src.services.debt_query import (
    DebtPerspective,
    build_debt_query,
    fetch_all,
    overdue_clause,
    paginate_debts,
    sum_amount,
    with_parties,
)
from src.services.exceptions import (
    ConflictError,
    CounterpartyNotFoundError,
    NotFoundError,
    ValidationError,
    store_errors,
)
from src.services.export import export_debts, parse_export_format

logger = logging.getLogger(__name__)

DEFAULT_RECENT_COUNT = 5
MAX_RECENT_COUNT = 20
SUMMARY_RECENT_COUNT = 3
SUMMARY_OVERDUE_COUNT = 5


class DebtService:
    """Service for managing debts owned by, or owed to, a user."""

    def __init__(
        self,
        db: Session,
        cache: DynamoDBCacheService,
        settings: Settings | None = None,
    ):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()
        self.debt_ttl = timedelta(minutes=self.settings.debt_cache_ttl_minutes)
        self.statistics_ttl = timedelta(minutes=self.settings.statistics_cache_ttl_minutes)

    def _now(self) -> datetime:
        return datetime.now(UTC)

    # =========================================================================
    # Single debt operations
    # =========================================================================

    def create(self, owner_id: int, data: DebtCreate) -> DebtResponse:
        """Create a debt lent by ``owner_id``."""
        self._validate_amount(data.amount)

        with store_errors(self.db, "create debt"):
            if self.db.get(User, owner_id) is None:
                raise NotFoundError("User not found")
            self._ensure_counterparty(data.counterparty_id)

            debt = Debt(
                owner_id=owner_id,
                counterparty_id=data.counterparty_id,
                title=data.title,
                description=data.description or None,
                amount=data.amount,
                currency=data.currency or self.settings.default_currency,
                due_date=data.due_date,
                paid=False,
            )
            self.db.add(debt)
            self.db.commit()
            self.db.refresh(debt)
            response = DebtResponse.from_debt(debt)

        self.cache.delete(user_stats_key(owner_id))
        logger.info(f"User {owner_id} created debt {debt.id}")
        return response

    def get(self, debt_id: int, user_id: int) -> DebtResponse:
        """Get one of the user's debts, served from cache when possible."""
        key = debt_key(debt_id)
        cached = self.cache.get(key, DebtResponse)
        if cached is not None:
            if cached.owner_id == user_id:
                return cached
            logger.warning(f"Cached debt {debt_id} belongs to another user; reading from store")

        with store_errors(self.db, "load debt"):
            debt = (
                with_parties(self.db.query(Debt))
                .filter(Debt.id == debt_id, Debt.owner_id == user_id)
                .first()
            )
            if debt is None:
                raise NotFoundError("Debt not found")
            response = DebtResponse.from_debt(debt)

        self.cache.set(key, response, self.debt_ttl)
        return response

    def update(self, debt_id: int, user_id: int, data: DebtUpdate) -> DebtResponse:
        """Replace the editable fields of a pending debt."""
        self._validate_amount(data.amount)

        with store_errors(self.db, "update debt"):
            debt = self._get_owned(debt_id, user_id)
            if debt.paid:
                raise ConflictError("Cannot modify a paid debt")
            self._ensure_counterparty(data.counterparty_id)

            debt.title = data.title
            debt.description = data.description or None
            debt.amount = data.amount
            debt.currency = data.currency or self.settings.default_currency
            debt.counterparty_id = data.counterparty_id
            debt.due_date = data.due_date
            self.db.commit()
            self.db.refresh(debt)
            response = DebtResponse.from_debt(debt)

        self._invalidate(debt_id, user_id)
        logger.info(f"User {user_id} updated debt {debt_id}")
        return response

    def delete(self, debt_id: int, user_id: int) -> None:
        with store_errors(self.db, "delete debt"):
            debt = self._get_owned(debt_id, user_id)
            self.db.delete(debt)
            self.db.commit()

        self._invalidate(debt_id, user_id)
        logger.info(f"User {user_id} deleted debt {debt_id}")

    def pay(self, debt_id: int, user_id: int, paid_at: datetime | None = None) -> DebtResponse:
        """Move a pending debt to paid."""
        with store_errors(self.db, "mark debt as paid"):
            debt = self._get_owned(debt_id, user_id)
            if debt.paid:
                raise ConflictError("Debt is already paid")

            debt.paid = True
            debt.paid_at = paid_at or self._now()
            self.db.commit()
            self.db.refresh(debt)
            response = DebtResponse.from_debt(debt)

        self._invalidate(debt_id, user_id)
        logger.info(f"User {user_id} marked debt {debt_id} as paid")
        return response

    def unpay(self, debt_id: int, user_id: int) -> DebtResponse:
        """Move a paid debt back to pending."""
        with store_errors(self.db, "mark debt as pending"):
            debt = self._get_owned(debt_id, user_id)
            if not debt.paid:
                raise ConflictError("Debt is not paid")

            debt.paid = False
            debt.paid_at = None
            self.db.commit()
            self.db.refresh(debt)
            response = DebtResponse.from_debt(debt)

        self._invalidate(debt_id, user_id)
        logger.info(f"User {user_id} marked debt {debt_id} as pending")
        return response

    # =========================================================================
    # Listings
    # =========================================================================

    def list_owned(self, user_id: int, filters: DebtFilters) -> PaginatedResult[DebtResponse]:
        """Debts the user lent."""
        with store_errors(self.db, "list debts"):
            query = build_debt_query(self.db, user_id, filters, DebtPerspective.OWNER, self._now())
            return paginate_debts(query, filters)

    def list_as_counterparty(
        self, user_id: int, filters: DebtFilters
    ) -> PaginatedResult[DebtResponse]:
        """Debts where the user is the counterparty (debts the user owes)."""
        with store_errors(self.db, "list owed debts"):
            query = build_debt_query(
                self.db, user_id, filters, DebtPerspective.COUNTERPARTY, self._now()
            )
            return paginate_debts(query, filters)

    def combined_view(self, user_id: int, filters: DebtFilters) -> CombinedDebtsView:
        """Both sides with the same filters; totals cover each full filtered set."""
        now = self._now()
        with store_errors(self.db, "load combined debts"):
            lent_query = build_debt_query(self.db, user_id, filters, DebtPerspective.OWNER, now)
            owe_query = build_debt_query(
                self.db, user_id, filters, DebtPerspective.COUNTERPARTY, now
            )
            total_lent = sum_amount(lent_query)
            total_owed = sum_amount(owe_query)
            lent = DebtGroup(data=paginate_debts(lent_query, filters), total_amount=total_lent)
            owed = DebtGroup(data=paginate_debts(owe_query, filters), total_amount=total_owed)

        return CombinedDebtsView(
            debts_i_lent=lent,
            debts_i_owe=owed,
            summary=CombinedSummary(
                total_lent=total_lent,
                total_owed=total_owed,
                net_balance=total_lent - total_owed,
                last_updated=now,
            ),
        )

    def overdue(self, user_id: int) -> list[DebtResponse]:
        """All of the user's overdue debts, soonest due date first."""
        filters = DebtFilters(
            overdue=True, order_by=DebtOrderField.DUE_DATE, order_direction=OrderDirection.ASC
        )
        return self.all_owned(user_id, filters)

    def recent(self, user_id: int, count: int = DEFAULT_RECENT_COUNT) -> list[DebtResponse]:
        if count < 1 or count > MAX_RECENT_COUNT:
            count = DEFAULT_RECENT_COUNT
        filters = DebtFilters(page=1, page_size=count)
        return self.list_owned(user_id, filters).items

    def search(
        self, user_id: int, term: str | None, page: int = 1, page_size: int = 10
    ) -> PaginatedResult[DebtResponse]:
        if not term or not term.strip():
            raise ValidationError("Search term is required")
        filters = DebtFilters(search=term, page=page, page_size=page_size)
        return self.list_owned(user_id, filters)

    def all_owned(self, user_id: int, filters: DebtFilters | None = None) -> list[DebtResponse]:
        """Every owned debt matching ``filters``, ignoring paging."""
        filters = filters or DebtFilters()
        with store_errors(self.db, "load debts"):
            query = build_debt_query(self.db, user_id, filters, DebtPerspective.OWNER, self._now())
            return fetch_all(query, filters)

    # =========================================================================
    # Aggregates
    # =========================================================================

    def statistics(self, user_id: int) -> DebtStatistics:
        """Counts and sums of the user's debts, cached per user."""
        key = user_stats_key(user_id)
        cached = self.cache.get(key, DebtStatistics)
        if cached is not None:
            return cached

        now = self._now()
        with store_errors(self.db, "compute debt statistics"):
            by_paid = (
                self.db.query(Debt.paid, func.count(Debt.id), func.sum(Debt.amount))
                .filter(Debt.owner_id == user_id)
                .group_by(Debt.paid)
                .all()
            )
            overdue_count, overdue_amount = (
                self.db.query(func.count(Debt.id), func.sum(Debt.amount))
                .filter(Debt.owner_id == user_id, overdue_clause(now))
                .one()
            )

        stats = DebtStatistics(currency=self.settings.default_currency, last_updated=now)
        for paid, count, amount in by_paid:
            amount = _to_decimal(amount)
            if paid:
                stats.paid_debts, stats.paid_amount = count, amount
            else:
                stats.pending_debts, stats.pending_amount = count, amount
        stats.total_debts = stats.paid_debts + stats.pending_debts
        stats.total_amount = stats.paid_amount + stats.pending_amount
        stats.overdue_debts = overdue_count
        stats.overdue_amount = _to_decimal(overdue_amount)

        self.cache.set(key, stats, self.statistics_ttl)
        return stats

    def summary(self, user_id: int) -> DebtSummary:
        return DebtSummary(
            statistics=self.statistics(user_id),
            recent_debts=self.recent(user_id, SUMMARY_RECENT_COUNT),
            overdue_debts=self.overdue(user_id)[:SUMMARY_OVERDUE_COUNT],
            last_updated=self._now(),
        )

    def export(self, user_id: int, export_format: ExportFormat | str) -> str:
        """Render all of the user's debts as JSON or CSV text."""
        export_format = parse_export_format(export_format)
        debts = self.all_owned(user_id)
        logger.info(f"Exporting {len(debts)} debts for user {user_id} as {export_format.value}")
        return export_debts(debts, export_format)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_owned(self, debt_id: int, user_id: int) -> Debt:
        debt = self.db.query(Debt).filter(Debt.id == debt_id, Debt.owner_id == user_id).first()
        if debt is None:
            raise NotFoundError("Debt not found")
        return debt

    def _ensure_counterparty(self, counterparty_id: int | None) -> None:
        if counterparty_id is not None and self.db.get(User, counterparty_id) is None:
            raise CounterpartyNotFoundError()

    def _validate_amount(self, amount: Decimal) -> None:
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than zero")

    def _invalidate(self, debt_id: int, owner_id: int) -> None:
        self.cache.delete(debt_key(debt_id))
        self.cache.delete(user_stats_key(owner_id))


def _to_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")
