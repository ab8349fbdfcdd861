# backend/pubpos/services/products_service.py
"""
Catalog Service: categories and products.

Product create/update/delete are inventory corrections: they set
quantity directly and bypass the Stock Ledger's reservation checks.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, OrderItem, Product
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    parse_money_cents,
    validate_payload,
)
from .concurrency import atomic
from .errors import ConflictError, NotFound

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents", "quantity", "category_id", "low_stock_threshold"},
    required_on_create={"name", "price_cents"},
)


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(name: str | None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name cannot be empty")

    if db.session.query(Category).filter_by(name=name).first():
        raise ConflictError(f"Category '{name}' already exists")

    category = Category(name=name)
    try:
        with atomic():
            db.session.add(category)
    except IntegrityError:
        raise ConflictError(f"Category '{name}' already exists")
    return category


def delete_category(category_id: int) -> None:
    """
    Delete a category. Products in it become uncategorized; they are never
    deleted along with it.
    """
    with atomic():
        category = db.session.get(Category, category_id)
        if not category:
            raise NotFound("Category not found")

        db.session.query(Product).filter_by(category_id=category_id).update(
            {Product.category_id: None}, synchronize_session="fetch"
        )
        db.session.delete(category)


# =============================================================================
# PRODUCTS
# =============================================================================

def _normalize_product_payload(payload: dict) -> dict:
    """Accept `price` as a decimal amount and store it as price_cents."""
    data = {k: v for k, v in (payload or {}).items() if k not in {"id", "price"}}
    if "price" in (payload or {}):
        data["price_cents"] = parse_money_cents(payload["price"])
    return data


def _check_category(category_id: int | None) -> None:
    if category_id is not None and not db.session.get(Category, category_id):
        raise ValidationError("category_id does not reference an existing category")


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def create_product(payload: dict) -> Product:
    patch = validate_payload(
        model=Product,
        payload=_normalize_product_payload(payload),
        policy=PRODUCT_POLICY,
        partial=False,
    )
    enforce_rules_product(patch)
    _check_category(patch.get("category_id"))

    if patch.get("low_stock_threshold") is None:
        patch["low_stock_threshold"] = current_app.config["DEFAULT_LOW_STOCK_THRESHOLD"]
    if patch.get("quantity") is None:
        patch["quantity"] = 0

    product = Product(**patch)
    with atomic():
        db.session.add(product)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(
        model=Product,
        payload=_normalize_product_payload(payload),
        policy=PRODUCT_POLICY,
        partial=True,
    )
    enforce_rules_product(patch)
    if "category_id" in patch:
        _check_category(patch["category_id"])

    with atomic():
        product = get_product(product_id)
        for key, value in patch.items():
            setattr(product, key, value)
    return product


def delete_product(product_id: int) -> None:
    """
    Delete a product that was never sold.

    Products referenced by order lines are kept so historical reports
    can still name them.
    """
    with atomic():
        product = get_product(product_id)
        in_use = db.session.query(OrderItem.id).filter_by(product_id=product_id).first()
        if in_use:
            raise ConflictError("Cannot delete a product that appears on orders")
        db.session.delete(product)
