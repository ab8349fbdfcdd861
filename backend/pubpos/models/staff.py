from __future__ import annotations

from ..extensions import db
from pubpos.time_utils import to_utc_z


class Staff(db.Model):
    """
    Bar staff member.

    The optional PIN is stored bcrypt-hashed (see auth_service). A staff
    member without a PIN is never "verified" by a PIN check, but gated
    flows let them through without one.
    """
    __tablename__ = "staff"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    pin_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash)

    def to_dict(self) -> dict:
        # Never expose the hash
        return {
            "id": self.id,
            "name": self.name,
            "has_pin": self.has_pin,
            "created_at": to_utc_z(self.created_at),
        }
