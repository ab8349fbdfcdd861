# Overview: Command handlers for the trading-day lifecycle.

from flask import current_app, g

from ..decorators import command, require_staff_pin
from ..services import day_session_service
from ..validation import require_int


@command("start_day")
def start_day_command(payload: dict):
    session = day_session_service.start_day(require_int(payload, "staff_id"))
    current_app.logger.info("Day session %s started by staff %s", session.id, session.started_by)
    return session.to_dict()


@command("close_day")
@require_staff_pin
def close_day_command(payload: dict):
    """
    Close the active day. Requires staff_id, plus pin when that staff
    member has one.
    """
    session = day_session_service.close_day()
    current_app.logger.info(
        "Day session %s closed by staff %s: %s orders, %s cents",
        session.id, g.acting_staff.id, session.total_orders, session.total_revenue_cents,
    )
    return session.to_dict()


@command("is_day_active")
def is_day_active_command(payload: dict):
    return day_session_service.is_day_active()


@command("get_active_session")
def get_active_session_command(payload: dict):
    session = day_session_service.get_active_session()
    return session.to_dict() if session else None
