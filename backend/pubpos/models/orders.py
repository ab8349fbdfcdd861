from __future__ import annotations

from ..extensions import db
from pubpos.time_utils import to_utc_z, utcnow
from .money import format_cents


ORDER_OPEN = "open"
ORDER_PAID = "paid"


class Order(db.Model):
    """
    A table's tab.

    LIFECYCLE:
    - open: items can be added, incremented, decremented
    - paid: terminal, total is frozen
    - (deleted): an open order whose last line was removed ceases to exist

    INVARIANT: at most one open order per table_number. Enforced by the
    partial unique index below and checked up front by order_service.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index(
            "uq_orders_open_table",
            "table_number",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("day_sessions.id"), nullable=True, index=True)

    table_number = db.Column(db.Integer, nullable=False)
    customer_name = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_OPEN, index=True)

    # Always equals sum(price_at_sale_cents * quantity) over items
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    staff = db.relationship("Staff", backref=db.backref("orders", lazy=True))
    session = db.relationship("DaySession", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == ORDER_OPEN

    def recompute_total(self) -> int:
        self.total_cents = sum(item.line_total_cents for item in self.items)
        return self.total_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_name": self.staff.name if self.staff else None,
            "session_id": self.session_id,
            "table_number": self.table_number,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "status": self.status,
            "total_cents": self.total_cents,
            "total": format_cents(self.total_cents),
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
        }

    def to_dict_with_items(self) -> dict:
        return {
            "order": self.to_dict(),
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """
    One product line on an order.

    price_at_sale_cents is copied from the product when the line is
    created and never re-read from the live product afterwards.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def line_total_cents(self) -> int:
        return self.price_at_sale_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "price_at_sale": format_cents(self.price_at_sale_cents),
        }
