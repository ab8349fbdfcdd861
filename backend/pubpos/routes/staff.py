# Overview: Command handlers for staff management and PIN checks.

from ..decorators import command
from ..services import auth_service, staff_service
from ..validation import require_int


@command("get_staff")
def get_staff_command(payload: dict):
    return [s.to_dict() for s in staff_service.list_staff()]


@command("create_staff")
def create_staff_command(payload: dict):
    """
    Request body:
    {
        "staff": {"name": "Ana", "pin": "1234"}   // pin optional
    }
    """
    data = payload.get("staff") if isinstance(payload.get("staff"), dict) else payload
    return staff_service.create_staff(data.get("name"), data.get("pin")).to_dict()


@command("delete_staff")
def delete_staff_command(payload: dict):
    staff_service.delete_staff(require_int(payload, "id"))
    return None


@command("verify_staff_pin")
def verify_staff_pin_command(payload: dict):
    # False on mismatch, missing PIN or unknown staff: the UI just asks again
    return auth_service.verify_pin(require_int(payload, "id"), payload.get("pin"))
