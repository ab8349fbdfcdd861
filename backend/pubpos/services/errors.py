# Overview: Domain error types shared by the service layer.

"""
Domain errors.

WHY: Every failure the bar staff can trigger (full table, empty shelf,
unsettled tabs at close) is recoverable at the boundary: the caller shows
the message and lets the user retry. Each error carries a stable `code`
for the client, an HTTP `status` for the dispatcher, and optional
structured `details`.
"""


class DomainError(Exception):
    """Base class for recoverable business-rule failures."""
    code = "DomainError"
    status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFound(DomainError):
    code = "NotFound"
    status = 404


class ConflictError(DomainError):
    """409-level business rule conflict (e.g., duplicate name, delete with history)."""
    code = "Conflict"
    status = 409


class InsufficientStock(DomainError):
    code = "InsufficientStock"
    status = 409


class TableAlreadyOpen(DomainError):
    code = "TableAlreadyOpen"
    status = 409


class OrderNotOpen(DomainError):
    code = "OrderNotOpen"
    status = 409


class SessionAlreadyActive(DomainError):
    code = "SessionAlreadyActive"
    status = 409


class NoActiveSession(DomainError):
    code = "NoActiveSession"
    status = 409


class TablesStillOpen(DomainError):
    code = "TablesStillOpen"
    status = 409


class EmptyDay(DomainError):
    code = "EmptyDay"
    status = 409


class DuplicateClosing(DomainError):
    code = "DuplicateClosing"
    status = 409


class NoOrdersFound(DomainError):
    code = "NoOrdersFound"
    status = 404
