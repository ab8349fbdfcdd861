"""
Day-Session Lifecycle Manager

WHY: Revenue is accounted per trading day. A day is started by a staff
member, runs (possibly past midnight) while tables open and settle, and
is closed once every tab is paid. Closing freezes the day's totals.

DESIGN PRINCIPLES:
- At most one active session, process-wide. start/close/recovery run
  under day_session_lock, and a partial unique index backs the check.
- Close takes one point-in-time read: open-order check and totals are
  computed in the same unit of work, while payments and new orders wait
  on the same lock.
- Sessions are immutable once closed.
- Recovery synthesizes a closed session for a missed date from that date's
  orders without touching the orders or the live session.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DaySession, Staff
from ..validation import ValidationError
from pubpos.time_utils import business_date, business_day_bounds, utcnow
from . import order_service
from .concurrency import atomic, day_session_lock, lock_for_update, run_with_retry
from .errors import (
    DuplicateClosing,
    EmptyDay,
    NoActiveSession,
    NoOrdersFound,
    NotFound,
    SessionAlreadyActive,
    TablesStillOpen,
)
from .reporting_service import build_day_summary, summarize_orders


def _tz() -> str:
    return current_app.config.get("BUSINESS_TIMEZONE", "UTC")


def _active_query():
    return db.session.query(DaySession).filter_by(is_active=True).populate_existing()


def get_active_session() -> DaySession | None:
    return _active_query().first()


def is_day_active() -> bool:
    return get_active_session() is not None


def get_session(session_id: int) -> DaySession:
    session = db.session.get(DaySession, session_id)
    if not session:
        raise NotFound("Day session not found", details={"session_id": session_id})
    return session


def start_day(staff_id: int) -> DaySession:
    """
    Open the trading day.

    Raises:
        SessionAlreadyActive: a session is already active
        NotFound: unknown staff member
    """
    if not db.session.get(Staff, staff_id):
        raise NotFound("Staff member not found")

    def _op():
        try:
            with atomic():
                existing = _active_query().first()
                if existing:
                    raise SessionAlreadyActive(
                        f"Day already started (session {existing.id})",
                        details={"session_id": existing.id},
                    )

                now = utcnow()
                session = DaySession(
                    date=business_date(now, _tz()),
                    started_by=staff_id,
                    started_at=now,
                    is_active=True,
                    is_recovery=False,
                )
                db.session.add(session)
                db.session.flush()
        except IntegrityError:
            raise SessionAlreadyActive("Day already started")
        return session

    with day_session_lock:
        return run_with_retry(_op)


def close_day() -> DaySession:
    """
    Close the active day and freeze its totals.

    Raises:
        NoActiveSession: no day is active (also on a second close)
        TablesStillOpen: any order is still open
        EmptyDay: no paid orders in this session
    """
    def _op():
        with atomic():
            session = lock_for_update(_active_query()).first()
            if not session:
                raise NoActiveSession("No active day to close")

            open_orders = order_service.list_open_orders()
            if open_orders:
                tables = [order.table_number for order in open_orders]
                raise TablesStillOpen(
                    f"{len(open_orders)} table(s) still open: {', '.join(str(t) for t in tables)}",
                    details={"tables": tables, "order_ids": [order.id for order in open_orders]},
                )

            revenue_cents, order_count = summarize_orders(order_service.get_session_orders(session))
            if order_count == 0:
                raise EmptyDay("Cannot close a day with no paid orders")

            session.total_revenue_cents = revenue_cents
            session.total_orders = order_count
            session.closed_at = utcnow()
            session.is_active = False
        return session

    with day_session_lock:
        return run_with_retry(_op)


def get_sales_history(limit: int | None = None) -> list[DaySession]:
    """Closed sessions, newest trading day first. Unbounded when limit is None."""
    if limit is not None and limit < 0:
        raise ValidationError("limit must be >= 0")

    query = (
        db.session.query(DaySession)
        .filter_by(is_active=False)
        .order_by(DaySession.started_at.desc(), DaySession.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def _closed_session_covering(day: date, start, end) -> DaySession | None:
    """
    A closed session whose window touches the business day [start, end).

    Live sessions cover started_at..closed_at (possibly past midnight).
    Recovery sessions cover exactly their date.
    """
    return (
        db.session.query(DaySession)
        .filter(
            DaySession.is_active.is_(False),
            or_(
                and_(DaySession.is_recovery.is_(True), DaySession.date == day),
                and_(
                    DaySession.is_recovery.is_(False),
                    DaySession.started_at < end,
                    DaySession.closed_at >= start,
                ),
            ),
        )
        .order_by(DaySession.id.asc())
        .first()
    )


def create_day_closing_for_date(day: date, staff_id: int | None = None) -> DaySession:
    """
    Recovery path for a date whose close was missed.

    Builds a closed session from the date's paid orders using the same
    aggregation rule as close_day. Orders and the live session are left
    untouched.

    Only orders no live session owns are counted, so a date is never
    accounted for twice.

    Raises:
        DuplicateClosing: a closed session already covers the date, or the
            active session does
        NoOrdersFound: the date has no paid orders
    """
    tz_name = _tz()
    if day > business_date(utcnow(), tz_name):
        raise ValidationError("Cannot create a closing for a future date")
    if staff_id is not None and not db.session.get(Staff, staff_id):
        raise NotFound("Staff member not found")

    def _op():
        with atomic():
            start, end = business_day_bounds(day, tz_name)

            duplicate = _closed_session_covering(day, start, end)
            if duplicate:
                raise DuplicateClosing(
                    f"Day {day.isoformat()} has already been closed",
                    details={"session_id": duplicate.id},
                )

            active = _active_query().first()
            if active and active.started_at < end:
                raise DuplicateClosing(
                    f"Day {day.isoformat()} belongs to the active session; close the day instead",
                    details={"session_id": active.id},
                )

            orders = order_service.get_orders_for_business_date(day, tz_name, unbound_only=True)
            revenue_cents, order_count = summarize_orders(orders)
            if order_count == 0:
                raise NoOrdersFound(
                    f"No orders found for {day.isoformat()}",
                    details={"date": day.isoformat(), "unpaid_orders": len(orders)},
                )

            session = DaySession(
                date=day,
                started_by=staff_id if staff_id is not None else orders[0].staff_id,
                started_at=start,
                closed_at=utcnow(),
                is_active=False,
                is_recovery=True,
                total_revenue_cents=revenue_cents,
                total_orders=order_count,
            )
            db.session.add(session)
        return session

    with day_session_lock:
        return run_with_retry(_op)


def get_day_summary(session_id: int | None = None) -> dict:
    """Summary for a session, defaulting to the active one."""
    if session_id is None:
        session = get_active_session()
        if not session:
            raise NoActiveSession("No active day; pass a session id")
    else:
        session = get_session(session_id)

    day = session.date or business_date(session.started_at, _tz())
    return build_day_summary(session, order_service.get_session_orders(session), day=day)
