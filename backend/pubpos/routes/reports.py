# Overview: Command handlers for sales history, day summaries and recovery closings.

from datetime import datetime, timedelta

from flask import current_app

from ..decorators import command
from ..services import day_session_service, order_service
from ..validation import ValidationError, optional_int
from pubpos.time_utils import business_day_bounds, parse_iso_date, parse_iso_datetime


def _parse_date(value, field: str):
    try:
        day = parse_iso_date(value) if isinstance(value, str) else None
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")
    if day is None:
        raise ValidationError(f"{field} required")
    return day


def _range_bound(value, field: str, *, end: bool) -> datetime:
    """
    A bare date covers the whole business day; a full ISO-8601 timestamp
    is taken as-is.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} required")
    if "T" not in value and " " not in value.strip():
        day = _parse_date(value, field)
        start, next_start = business_day_bounds(day, current_app.config["BUSINESS_TIMEZONE"])
        if end:
            # Inclusive upper bound: last representable instant of the day
            return next_start - timedelta(microseconds=1)
        return start
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


@command("get_sales_history")
def get_sales_history_command(payload: dict):
    limit = optional_int(payload, "limit")
    return [s.to_dict() for s in day_session_service.get_sales_history(limit)]


@command("get_day_summary")
def get_day_summary_command(payload: dict):
    return day_session_service.get_day_summary(optional_int(payload, "session_id"))


@command("get_orders_by_date_range")
def get_orders_by_date_range_command(payload: dict):
    start = _range_bound(payload.get("start_date"), "start_date", end=False)
    end = _range_bound(payload.get("end_date"), "end_date", end=True)
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    return [o.to_dict_with_items() for o in order_service.get_orders_in_date_range(start, end)]


@command("create_day_closing_for_date")
def create_day_closing_for_date_command(payload: dict):
    session = day_session_service.create_day_closing_for_date(
        _parse_date(payload.get("date"), "date"),
        optional_int(payload, "staff_id"),
    )
    current_app.logger.info(
        "Recovery closing %s created for %s: %s orders, %s cents",
        session.id, session.date, session.total_orders, session.total_revenue_cents,
    )
    return session.to_dict()
