"""Tests for DebtService business rules and cache orchestration."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import OperationalError

from src.config import Settings, get_settings
from src.models.debt import Debt
from src.schemas.debt import DebtCreate, DebtFilters, DebtResponse, DebtUpdate
from src.services.cache import debt_key, user_stats_key
from src.services.debt_service import DebtService
from src.services.exceptions import (
    ConflictError,
    CounterpartyNotFoundError,
    DebtTrackerError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def service(db, cache):
    return DebtService(db, cache)


@pytest.fixture
def owner(users):
    return users[0]


@pytest.fixture
def counterparty(users):
    return users[1]


class TestCreate:
    """Tests for creating debts."""

    def test_create_defaults(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("50000")))

        assert debt.amount == Decimal("50000")
        assert debt.currency == "COP"
        assert debt.paid is False
        assert debt.paid_at is None
        assert debt.owner_name == "Olga Owner"

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_non_positive_amount(self, service, owner, db, amount):
        with pytest.raises(ValidationError):
            service.create(owner.id, DebtCreate(title="Lunch", amount=amount))
        assert db.query(Debt).count() == 0

    @pytest.mark.parametrize("schema", [DebtCreate, DebtUpdate])
    @pytest.mark.parametrize("amount", ["0.001", "0.005", "100000000000000000.00"])
    def test_amount_must_fit_in_cents(self, schema, amount):
        with pytest.raises(SchemaValidationError):
            schema(title="Lunch", amount=Decimal(amount))

    def test_smallest_amount(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Gum", amount=Decimal("0.01")))
        assert debt.amount == Decimal("0.01")

    def test_unknown_counterparty(self, service, owner, db):
        with pytest.raises(CounterpartyNotFoundError) as exc_info:
            service.create(
                owner.id, DebtCreate(title="Lunch", amount=Decimal("10"), counterparty_id=4242)
            )
        assert exc_info.value.message == "Counterparty not found"
        assert db.query(Debt).count() == 0

    def test_unknown_owner(self, service):
        with pytest.raises(NotFoundError):
            service.create(999, DebtCreate(title="Lunch", amount=Decimal("10")))

    def test_default_currency_from_settings(self, db, cache, owner):
        service = DebtService(db, cache, settings=Settings(default_currency="USD"))

        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        assert debt.currency == "USD"
        assert service.statistics(owner.id).currency == "USD"

    def test_stored_currency_defaults_to_setting(self, db, owner):
        debt = Debt(owner_id=owner.id, title="Direct", amount=Decimal("5"))
        db.add(debt)
        db.commit()
        assert debt.currency == get_settings().default_currency

    def test_create_invalidates_statistics(self, service, owner, cache):
        service.statistics(owner.id)
        assert cache.exists(user_stats_key(owner.id))

        service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        assert not cache.exists(user_stats_key(owner.id))


class TestRead:
    """Tests for cache-aside reads."""

    def test_get_populates_cache(self, service, owner, cache):
        created = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        assert not cache.exists(debt_key(created.id))

        service.get(created.id, owner.id)
        cached = cache.get(debt_key(created.id), DebtResponse)
        assert cached.title == "Lunch"

    def test_get_served_from_cache(self, service, owner, cache):
        created = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        service.get(created.id, owner.id)

        with patch.object(service.db, "query", side_effect=AssertionError("store was queried")):
            debt = service.get(created.id, owner.id)
        assert debt.id == created.id

    def test_cached_entry_of_other_owner_is_ignored(self, service, owner, counterparty, cache):
        created = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        service.get(created.id, owner.id)

        with pytest.raises(NotFoundError):
            service.get(created.id, counterparty.id)

    def test_get_works_when_cache_is_down(self, service, owner, break_cache):
        created = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))
        break_cache()

        assert service.get(created.id, owner.id).title == "Lunch"


class TestStateMachine:
    """Tests for pay/unpay transitions and the paid-debt edit guard."""

    def test_end_to_end(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("50000")))

        paid = service.pay(debt.id, owner.id)
        assert paid.paid is True
        assert paid.status == "Paid"
        assert abs(paid.paid_at - datetime.now(UTC)) < timedelta(seconds=5)

        with pytest.raises(ConflictError):
            service.update(debt.id, owner.id, DebtUpdate(title="Dinner", amount=Decimal("1")))

        pending = service.unpay(debt.id, owner.id)
        assert pending.paid_at is None
        assert pending.status == "Pending"

        updated = service.update(
            debt.id, owner.id, DebtUpdate(title="Dinner", amount=Decimal("1"))
        )
        assert updated.title == "Dinner"

    def test_pay_requires_pending(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))
        service.pay(debt.id, owner.id)

        with pytest.raises(ConflictError):
            service.pay(debt.id, owner.id)

    def test_unpay_requires_paid(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))

        with pytest.raises(ConflictError):
            service.unpay(debt.id, owner.id)

    def test_pay_with_timestamp(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))
        when = datetime(2026, 2, 1, 8, 0, tzinfo=UTC)

        assert service.pay(debt.id, owner.id, when).paid_at == when

    def test_update_rejects_unknown_counterparty(self, service, owner):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))

        with pytest.raises(CounterpartyNotFoundError):
            service.update(
                debt.id,
                owner.id,
                DebtUpdate(title="Lunch", amount=Decimal("1"), counterparty_id=9999),
            )

    def test_transitions_invalidate_cache(self, service, owner, cache):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))

        for transition in (service.pay, service.unpay):
            service.get(debt.id, owner.id)
            service.statistics(owner.id)
            transition(debt.id, owner.id)
            assert not cache.exists(debt_key(debt.id))
            assert not cache.exists(user_stats_key(owner.id))

        assert service.get(debt.id, owner.id).paid is False

    def test_delete_scoped_to_owner(self, service, owner, counterparty):
        debt = service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("1")))

        with pytest.raises(NotFoundError):
            service.delete(debt.id, counterparty.id)

        service.delete(debt.id, owner.id)
        with pytest.raises(NotFoundError):
            service.get(debt.id, owner.id)


class TestQueries:
    """Tests for listing helpers."""

    def test_recent_count_fallback(self, service, owner):
        for i in range(6):
            service.create(owner.id, DebtCreate(title=f"Debt {i}", amount=Decimal("1")))

        assert len(service.recent(owner.id, 0)) == 5
        assert len(service.recent(owner.id, 21)) == 5
        assert [d.title for d in service.recent(owner.id, 2)] == ["Debt 5", "Debt 4"]

    def test_search_requires_term(self, service, owner):
        with pytest.raises(ValidationError):
            service.search(owner.id, "  ")

    def test_overdue_sorted_by_due_date(self, service, owner):
        now = datetime.now(UTC)
        service.create(
            owner.id,
            DebtCreate(title="recent", amount=Decimal("1"), due_date=now - timedelta(days=1)),
        )
        service.create(
            owner.id,
            DebtCreate(title="oldest", amount=Decimal("1"), due_date=now - timedelta(days=9)),
        )

        assert [d.title for d in service.overdue(owner.id)] == ["oldest", "recent"]

    def test_combined_view(self, service, owner, counterparty):
        service.create(
            owner.id,
            DebtCreate(title="lent", amount=Decimal("100"), counterparty_id=counterparty.id),
        )
        service.create(
            counterparty.id,
            DebtCreate(title="owed", amount=Decimal("30"), counterparty_id=owner.id),
        )

        view = service.combined_view(owner.id, DebtFilters())
        assert [d.title for d in view.debts_i_lent.data.items] == ["lent"]
        assert [d.title for d in view.debts_i_owe.data.items] == ["owed"]
        assert view.summary.net_balance == Decimal("70")

    def test_statistics_cached(self, service, owner, cache):
        service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))

        first = service.statistics(owner.id)
        assert first.total_debts == 1
        with patch.object(service.db, "query", side_effect=AssertionError("store was queried")):
            assert service.statistics(owner.id) == first


class TestStoreFailures:
    """Tests for store errors becoming generic failures."""

    def test_store_error_is_generic(self, service, owner):
        with patch.object(service.db, "commit", side_effect=OperationalError("stmt", {}, "boom")):
            with pytest.raises(DebtTrackerError) as exc_info:
                service.create(owner.id, DebtCreate(title="Lunch", amount=Decimal("10")))

        assert exc_info.value.message == "Internal server error"
        assert "boom" not in str(exc_info.value)
        assert exc_info.value.status_code == 500
