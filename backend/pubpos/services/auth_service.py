# Overview: Authorization Guard; staff PIN hashing and verification.

"""
Staff PIN Authorization

WHY: Closing a table or the day must be attributable to someone who knows
their PIN. Verification is a yes/no answer, never an error: a wrong PIN
means "ask again".

SECURITY NOTES:
- PINs hashed with bcrypt (cost factor 12)
- 4 to 8 digits
- No lockout or rate limiting here (single local client)
"""

import re

import bcrypt

from ..extensions import db
from ..models import Staff

PIN_PATTERN = re.compile(r"^\d{4,8}$")


class PinValidationError(ValueError):
    """Raised when a PIN doesn't meet format requirements."""
    pass


def validate_pin_format(pin: str) -> None:
    if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
        raise PinValidationError("PIN must be 4 to 8 digits")


def hash_pin(pin: str) -> str:
    """
    Hash PIN using bcrypt with cost factor 12.

    PIN is validated for format before hashing.
    """
    validate_pin_format(pin)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(pin.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_pin(staff_id: int, presented_pin: str | None) -> bool:
    """
    True only if the staff member has a PIN and presented_pin matches it.

    Returns False (never raises) for an unknown staff id, a staff member
    without a PIN, a missing or malformed PIN, or a mismatch.
    """
    if not presented_pin or not isinstance(presented_pin, str):
        return False

    staff = db.session.get(Staff, staff_id)
    if not staff or not staff.pin_hash:
        return False

    try:
        return bcrypt.checkpw(presented_pin.encode('utf-8'), staff.pin_hash.encode('utf-8'))
    except ValueError:
        return False


def pin_required(staff: Staff) -> bool:
    """Gated flows demand a PIN only from staff who have one set."""
    return staff.has_pin


def authorize(staff: Staff, presented_pin: str | None) -> bool:
    """Gate for close-table / close-day flows."""
    if not pin_required(staff):
        return True
    return verify_pin(staff.id, presented_pin)
