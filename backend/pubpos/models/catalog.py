from __future__ import annotations

from ..extensions import db
from pubpos.time_utils import to_utc_z
from .money import format_cents


class Category(db.Model):
    """
    Product grouping for the menu grid.

    Deleting a category never deletes products; referencing products fall
    back to "uncategorized" (category_id = NULL). See products_service.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
        }


class Product(db.Model):
    """
    Product master data and on-hand stock.

    WHY quantity lives here: the bar keeps a single stock count per
    product. Order activity only ever touches `quantity`, and only through
    inventory_service (conditional updates, never below zero).

    Prices are authoritative in cents; order lines snapshot the price at
    the moment they are added.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "quantity": self.quantity,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
        }
