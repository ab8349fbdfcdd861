# Overview: Service-layer operations for staff; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DaySession, Order, Staff
from ..validation import ValidationError
from .auth_service import PinValidationError, hash_pin
from .concurrency import atomic
from .errors import ConflictError, NotFound


def list_staff() -> list[Staff]:
    return db.session.query(Staff).order_by(Staff.name.asc()).all()


def get_staff(staff_id: int) -> Staff:
    staff = db.session.get(Staff, staff_id)
    if not staff:
        raise NotFound("Staff member not found")
    return staff


def create_staff(name: str | None, pin: str | None = None) -> Staff:
    """
    Create a staff member. An empty PIN means "no PIN".

    Raises:
        ValidationError: blank name or malformed PIN
        ConflictError: name already taken
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Staff name cannot be empty")

    pin = (pin or "").strip() or None
    try:
        pin_hash = hash_pin(pin) if pin else None
    except PinValidationError as e:
        raise ValidationError(str(e))

    if db.session.query(Staff).filter_by(name=name).first():
        raise ConflictError(f"Staff member '{name}' already exists")

    staff = Staff(name=name, pin_hash=pin_hash)
    try:
        with atomic():
            db.session.add(staff)
    except IntegrityError:
        raise ConflictError(f"Staff member '{name}' already exists")
    return staff


def delete_staff(staff_id: int) -> None:
    """Delete a staff member with no orders and no day sessions."""
    with atomic():
        staff = get_staff(staff_id)

        if db.session.query(Order.id).filter_by(staff_id=staff_id).first():
            raise ConflictError("Cannot delete staff member with existing orders")
        if db.session.query(DaySession.id).filter_by(started_by=staff_id).first():
            raise ConflictError("Cannot delete staff member who has opened a day")

        db.session.delete(staff)
