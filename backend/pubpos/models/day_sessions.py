from __future__ import annotations

from ..extensions import db
from pubpos.time_utils import to_utc_z
from .money import format_cents


class DaySession(db.Model):
    """
    One trading day, bracketed by start and close.

    LIFECYCLE:
    - active: is_active=True, closed_at/totals unset
    - closed: is_active=False, totals frozen at close time

    IMMUTABLE: once closed, a session is never reopened or re-closed.

    SINGLETON: at most one row may have is_active=True. The partial unique
    index backs the check-then-insert done by day_session_service.

    Recovery sessions (is_recovery=True) are synthesized after the fact for
    a date whose close was missed; they never pass through "active".
    """
    __tablename__ = "day_sessions"
    __table_args__ = (
        db.Index(
            "uq_day_sessions_single_active",
            "is_active",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business date the session opened on (a session may run past midnight)
    date = db.Column(db.Date, nullable=True, index=True)

    started_by = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    is_recovery = db.Column(db.Boolean, nullable=False, default=False)

    # Set at close time only
    total_revenue_cents = db.Column(db.Integer, nullable=True)
    total_orders = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    starter = db.relationship("Staff", backref=db.backref("day_sessions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "started_by": self.started_by,
            "started_by_name": self.starter.name if self.starter else None,
            "started_at": to_utc_z(self.started_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "is_active": self.is_active,
            "is_recovery": self.is_recovery,
            "total_revenue_cents": self.total_revenue_cents,
            "total_revenue": format_cents(self.total_revenue_cents),
            "total_orders": self.total_orders,
        }
