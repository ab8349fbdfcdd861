# Overview: Command dispatcher; one endpoint for the presentation layer's command catalog.

# backend/pubpos/routes/commands.py
"""
Command API

The presentation layer invokes a fixed catalog of named commands
(create_order, close_day, ...). Each is a POST with a JSON object body:

    POST /api/commands/<name>
    {"order_id": 12, "items": [{"product_id": 3, "quantity": 2}]}

Success:  200 {"result": <value>}
Failure:  4xx {"error": "...", "code": "TableAlreadyOpen", "details": {...}}
"""

from flask import Blueprint, Response, current_app, jsonify, request

from ..decorators import COMMANDS
from ..services.errors import DomainError
from ..validation import ValidationError


commands_bp = Blueprint("commands", __name__, url_prefix="/api/commands")


@commands_bp.get("")
@commands_bp.get("/")
def list_commands_route():
    return jsonify({"commands": sorted(COMMANDS)}), 200


@commands_bp.post("/<name>")
def dispatch_command_route(name: str):
    handler = COMMANDS.get(name)
    if handler is None:
        return jsonify({"error": f"Unknown command: {name}", "code": "UnknownCommand", "details": {}}), 404

    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload", "code": "ValidationError", "details": {}}), 400

    try:
        result = handler(payload)
    except DomainError as e:
        return jsonify(e.to_dict()), e.status
    except ValidationError as e:
        return jsonify({"error": str(e), "code": "ValidationError", "details": {}}), 400
    except Exception:
        current_app.logger.exception("Command %s failed", name)
        return jsonify({"error": "Internal server error", "code": "InternalError", "details": {}}), 500

    if isinstance(result, (Response, tuple)):
        return result
    return jsonify({"result": result}), 200
