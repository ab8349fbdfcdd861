"""
Day-Session Lifecycle tests.

Verifies:
- At most one active session
- Close is refused while tables are open or nothing was sold
- Closing freezes totals from paid orders only
- Recovery closings for missed dates
"""

from datetime import date, datetime, timedelta

import pytest

from pubpos.extensions import db
from pubpos.models import DaySession, Order, OrderItem, ORDER_OPEN, ORDER_PAID
from pubpos.services import day_session_service, order_service
from pubpos.services.errors import (
    DuplicateClosing,
    EmptyDay,
    NoActiveSession,
    NoOrdersFound,
    NotFound,
    SessionAlreadyActive,
    TablesStillOpen,
)
from pubpos.validation import ValidationError


def _tab(staff, product, table, units):
    return order_service.create_order(staff.id, table, [(product.id, units)])


def _historic_order(staff, product, when, units, status=ORDER_PAID, session_id=None):
    order = Order(
        staff_id=staff.id,
        session_id=session_id,
        table_number=1,
        status=status,
        created_at=when,
        paid_at=when if status == ORDER_PAID else None,
    )
    order.items.append(OrderItem(product_id=product.id, quantity=units, price_at_sale_cents=product.price_cents))
    order.recompute_total()
    db.session.add(order)
    db.session.commit()
    return order


def _closed_live_session(staff, started_at, closed_at, revenue_cents, order_count):
    session = DaySession(
        date=started_at.date(),
        started_by=staff.id,
        started_at=started_at,
        closed_at=closed_at,
        is_active=False,
        is_recovery=False,
        total_revenue_cents=revenue_cents,
        total_orders=order_count,
    )
    db.session.add(session)
    db.session.commit()
    return session


def _history_revenue():
    return sum(s.total_revenue_cents for s in day_session_service.get_sales_history())


    return order


# =============================================================================
# START
# =============================================================================


class TestStartDay:

    def test_start(self, bartender):
        assert day_session_service.is_day_active() is False
        session = day_session_service.start_day(bartender.id)
        assert session.is_active is True
        assert session.started_by == bartender.id
        assert session.closed_at is None
        assert session.total_orders is None
        assert day_session_service.is_day_active() is True
        assert day_session_service.get_active_session().id == session.id

    def test_second_start_rejected(self, active_day, bartender):
        with pytest.raises(SessionAlreadyActive):
            day_session_service.start_day(bartender.id)
        assert db.session.query(DaySession).count() == 1

    def test_unknown_staff(self, db_session):
        with pytest.raises(NotFound):
            day_session_service.start_day(999)


# =============================================================================
# CLOSE
# =============================================================================


class TestCloseDay:

    def test_no_active_session(self, db_session):
        with pytest.raises(NoActiveSession):
            day_session_service.close_day()

    def test_tables_still_open_then_close(self, active_day, bartender, tab_item):
        # 100.00, 75.00 and 25.00 paid; 50.00 still open
        for table, units in ((1, 4), (2, 3), (3, 1)):
            order_service.mark_order_paid(_tab(bartender, tab_item, table, units).id)
        still_open = _tab(bartender, tab_item, 4, 2)

        with pytest.raises(TablesStillOpen) as exc:
            day_session_service.close_day()
        assert exc.value.details["tables"] == [4]
        assert exc.value.details["order_ids"] == [still_open.id]
        assert day_session_service.is_day_active() is True

        order_service.mark_order_paid(still_open.id)
        closed = day_session_service.close_day()

        assert closed.is_active is False
        assert closed.closed_at is not None
        assert closed.total_revenue_cents == 25000
        assert closed.to_dict()["total_revenue"] == "250.00"
        assert closed.total_orders == 4

    def test_empty_day(self, active_day):
        with pytest.raises(EmptyDay):
            day_session_service.close_day()
        assert day_session_service.is_day_active() is True

    def test_close_twice(self, active_day, bartender, beers):
        order_service.mark_order_paid(_tab(bartender, beers, 1, 1).id)
        day_session_service.close_day()
        with pytest.raises(NoActiveSession):
            day_session_service.close_day()

    def test_new_day_after_close(self, active_day, bartender, beers):
        order_service.mark_order_paid(_tab(bartender, beers, 1, 1).id)
        day_session_service.close_day()

        fresh = day_session_service.start_day(bartender.id)
        assert fresh.id != active_day.id
        assert day_session_service.get_day_summary()["total_orders"] == 0

    def test_no_orders_without_active_day(self, active_day, bartender, beers):
        order_service.mark_order_paid(_tab(bartender, beers, 1, 1).id)
        day_session_service.close_day()
        with pytest.raises(NoActiveSession):
            _tab(bartender, beers, 2, 1)


# =============================================================================
# HISTORY / SUMMARY
# =============================================================================


class TestHistoryAndSummary:

    def _close_one(self, staff, product, table):
        day_session_service.start_day(staff.id)
        order_service.mark_order_paid(_tab(staff, product, table, 1).id)
        return day_session_service.close_day()

    def test_history_newest_first(self, bartender, beers):
        first = self._close_one(bartender, beers, 1)
        second = self._close_one(bartender, beers, 2)
        day_session_service.start_day(bartender.id)  # active: not history

        history = day_session_service.get_sales_history()
        assert [s.id for s in history] == [second.id, first.id]
        assert [s.id for s in day_session_service.get_sales_history(1)] == [second.id]
        assert day_session_service.get_sales_history(0) == []

    def test_negative_limit(self, db_session):
        with pytest.raises(ValidationError):
            day_session_service.get_sales_history(-1)

    def test_summary_of_active_day(self, active_day, bartender, beers, cola):
        paid = order_service.create_order(bartender.id, 1, [(beers.id, 2), (cola.id, 1)])
        order_service.mark_order_paid(paid.id)
        _tab(bartender, beers, 2, 1)

        summary = day_session_service.get_day_summary()
        assert summary["session"]["id"] == active_day.id
        assert summary["total_revenue_cents"] == 1300
        assert summary["total_revenue"] == "13.00"
        assert summary["total_orders"] == 1
        assert len(summary["orders"]) == 2
        assert [row["name"] for row in summary["product_sales"]] == ["Heineken", "Cola"]

    def test_summary_without_active_day(self, db_session):
        with pytest.raises(NoActiveSession):
            day_session_service.get_day_summary()

    def test_summary_unknown_session(self, db_session):
        with pytest.raises(NotFound):
            day_session_service.get_day_summary(999)


# =============================================================================
# RECOVERY
# =============================================================================


class TestRecoveryClosing:

    DAY = date(2024, 1, 15)

    def test_recover_missed_day(self, bartender, beers, cola):
        noon = datetime(2024, 1, 15, 12, 0)
        _historic_order(bartender, beers, noon, 2)
        _historic_order(bartender, cola, noon + timedelta(hours=3), 1)
        _historic_order(bartender, beers, noon + timedelta(hours=4), 1, status=ORDER_OPEN)
        _historic_order(bartender, beers, datetime(2024, 1, 16, 0, 30), 5)

        session = day_session_service.create_day_closing_for_date(self.DAY)
        assert session.is_active is False
        assert session.is_recovery is True
        assert session.date == self.DAY
        assert session.started_by == bartender.id
        assert session.started_at == datetime(2024, 1, 15, 0, 0)
        assert session.total_revenue_cents == 1300
        assert session.total_orders == 2

        assert [s.id for s in day_session_service.get_sales_history()] == [session.id]

    def test_recovery_does_not_touch_active_day(self, active_day, bartender, beers):
        _historic_order(bartender, beers, datetime(2024, 1, 15, 20, 0), 1)
        day_session_service.create_day_closing_for_date(self.DAY, bartender.id)
        assert day_session_service.get_active_session().id == active_day.id

    def test_duplicate_closing(self, bartender, beers):
        _historic_order(bartender, beers, datetime(2024, 1, 15, 20, 0), 1)
        day_session_service.create_day_closing_for_date(self.DAY)
        with pytest.raises(DuplicateClosing):
            day_session_service.create_day_closing_for_date(self.DAY)

    def test_no_orders_found(self, bartender):
        with pytest.raises(NoOrdersFound):
            day_session_service.create_day_closing_for_date(self.DAY)
        assert db.session.query(DaySession).count() == 0

    def test_future_date(self, bartender):
        with pytest.raises(ValidationError):
            day_session_service.create_day_closing_for_date(date.today() + timedelta(days=2))

    def test_summary_of_recovery_session(self, bartender, beers):
        _historic_order(bartender, beers, datetime(2024, 1, 15, 20, 0), 2)
        session = day_session_service.create_day_closing_for_date(self.DAY)

        summary = day_session_service.get_day_summary(session.id)
        assert summary["date"] == "2024-01-15"
        assert summary["total_revenue"] == "10.00"
        assert summary["product_sales"] == [
            {"name": "Heineken", "quantity": 2, "revenue_cents": 1000, "revenue": "10.00"}
        ]


class TestRecoveryNeverDoubleCounts:

    def test_live_session_closed_after_midnight_covers_both_dates(self, bartender, beers):
        late = _closed_live_session(
            bartender, datetime(2024, 1, 14, 23, 0), datetime(2024, 1, 15, 1, 0), 1000, 1
        )
        _historic_order(bartender, beers, datetime(2024, 1, 15, 0, 30), 2, session_id=late.id)

        for day in (date(2024, 1, 14), date(2024, 1, 15)):
            with pytest.raises(DuplicateClosing) as exc:
                day_session_service.create_day_closing_for_date(day)
            assert exc.value.details["session_id"] == late.id

        assert _history_revenue() == 1000

    def test_active_day_cannot_be_recovered(self, active_day, bartender, beers):
        order_service.mark_order_paid(_tab(bartender, beers, 1, 2).id)

        with pytest.raises(DuplicateClosing):
            day_session_service.create_day_closing_for_date(active_day.date)

        day_session_service.close_day()
        history = day_session_service.get_sales_history()
        assert [s.id for s in history] == [active_day.id]
        assert _history_revenue() == 1000

    def test_closed_day_cannot_be_recovered(self, active_day, bartender, beers):
        order_service.mark_order_paid(_tab(bartender, beers, 1, 2).id)
        closed = day_session_service.close_day()

        with pytest.raises(DuplicateClosing) as exc:
            day_session_service.create_day_closing_for_date(closed.date)
        assert exc.value.details["session_id"] == closed.id
        assert _history_revenue() == 1000

    def test_neighbouring_date_still_recoverable(self, bartender, beers, cola):
        earlier = _closed_live_session(
            bartender, datetime(2024, 1, 14, 10, 0), datetime(2024, 1, 14, 22, 0), 1000, 1
        )
        _historic_order(bartender, beers, datetime(2024, 1, 14, 12, 0), 2, session_id=earlier.id)
        _historic_order(bartender, cola, datetime(2024, 1, 15, 18, 0), 1)

        recovered = day_session_service.create_day_closing_for_date(date(2024, 1, 15))
        assert recovered.total_revenue_cents == 300
        assert recovered.total_orders == 1
        assert _history_revenue() == 1300

    def test_session_bound_orders_are_not_recounted(self, bartender, beers, cola):
        # Inconsistent window on purpose: the bound order falls outside it
        live = _closed_live_session(
            bartender, datetime(2024, 1, 13, 10, 0), datetime(2024, 1, 13, 22, 0), 1000, 1
        )
        _historic_order(bartender, beers, datetime(2024, 1, 15, 9, 0), 2, session_id=live.id)
        _historic_order(bartender, cola, datetime(2024, 1, 15, 18, 0), 1)

        recovered = day_session_service.create_day_closing_for_date(date(2024, 1, 15))
        assert recovered.total_revenue_cents == 300

        summary = day_session_service.get_day_summary(recovered.id)
        assert [row["name"] for row in summary["product_sales"]] == ["Cola"]
