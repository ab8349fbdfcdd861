# Overview: Command registration and staff-PIN gate for command handlers.

from functools import wraps
from flask import jsonify, g

from .services import auth_service, staff_service
from .validation import require_int

# Command name -> handler(payload: dict)
COMMANDS: dict = {}


def command(name: str):
    """
    Register a handler under a command name.

    Handlers take the JSON payload dict and return a JSON-serializable
    value (wrapped as {"result": ...}) or a ready-made response.
    """
    def decorator(f):
        if name in COMMANDS and COMMANDS[name] is not f:
            raise RuntimeError(f"Command {name!r} registered twice")
        COMMANDS[name] = f
        return f
    return decorator


def require_staff_pin(f):
    """
    Gate a command on the acting staff member's PIN.

    Payload must carry `staff_id`; `pin` is required only when that staff
    member has a PIN. A wrong or missing PIN is not an error: the command
    is skipped and the caller gets {"result": null, "authorized": false}
    so it can ask again.

    Sets g.acting_staff for the wrapped handler.
    """
    @wraps(f)
    def decorated_function(payload: dict):
        staff = staff_service.get_staff(require_int(payload, "staff_id"))

        if not auth_service.authorize(staff, payload.get("pin")):
            return jsonify({"result": None, "authorized": False}), 200

        g.acting_staff = staff
        return f(payload)

    return decorated_function
