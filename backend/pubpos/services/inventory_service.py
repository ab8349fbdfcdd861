# Overview: Stock Ledger; authoritative on-hand quantities and reservation checks.

"""
Stock Ledger

WHY: Every unit poured is a unit off the shelf. Order activity is the only
thing that moves stock (product create/update are inventory corrections
and go through products_service instead).

DESIGN PRINCIPLES:
- Quantity never goes below zero: consumption is a conditional UPDATE
  (quantity >= n), so two writers cannot oversell even across processes.
- Multi-line requests are checked all-or-nothing before anything is taken.
- No commits here. Callers run inside concurrency.atomic() so a failure
  rolls back every reservation made in the same unit of work.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product
from .errors import InsufficientStock, NotFound


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def _shortage(product: Product, requested: int) -> dict:
    return {
        "product_id": product.id,
        "product_name": product.name,
        "requested_quantity": requested,
        "on_hand": product.quantity,
    }


def get_on_hand(product_id: int) -> int:
    return _get_product(product_id).quantity


def reserve(product_id: int, delta: int) -> Product:
    """
    Adjust on-hand stock for order activity.

    delta > 0 takes units off the shelf, delta < 0 puts them back.

    Raises:
        InsufficientStock: taking delta units would leave quantity < 0
        NotFound: unknown product
    """
    product = _get_product(product_id)
    if delta == 0:
        return product

    if delta > 0:
        updated = (
            db.session.query(Product)
            .filter(Product.id == product_id, Product.quantity >= delta)
            .update({Product.quantity: Product.quantity - delta}, synchronize_session="fetch")
        )
        if not updated:
            db.session.refresh(product)
            raise InsufficientStock(
                f"Insufficient stock for {product.name}: requested {delta}, available {product.quantity}",
                details={"items": [_shortage(product, delta)]},
            )
    else:
        db.session.query(Product).filter(Product.id == product_id).update(
            {Product.quantity: Product.quantity - delta}, synchronize_session="fetch"
        )

    return product


def release(product_id: int, quantity: int) -> Product:
    """Return units to stock (line decreased or removed)."""
    return reserve(product_id, -quantity)


def reserve_many(requested: list[tuple[int, int]]) -> dict[int, Product]:
    """
    All-or-nothing reservation for several (product_id, quantity) pairs.

    Quantities for the same product are summed before checking, and every
    shortage is reported at once. Nothing is taken unless everything fits.

    Returns products keyed by id (callers snapshot prices from them).
    """
    totals: dict[int, int] = {}
    for product_id, quantity in requested:
        totals[product_id] = totals.get(product_id, 0) + quantity

    products = {product_id: _get_product(product_id) for product_id in totals}

    insufficient = [
        _shortage(products[product_id], qty)
        for product_id, qty in totals.items()
        if products[product_id].quantity < qty
    ]
    if insufficient:
        names = ", ".join(
            f"{row['product_name']} (requested {row['requested_quantity']}, available {row['on_hand']})"
            for row in insufficient
        )
        raise InsufficientStock(f"Insufficient stock for {names}", details={"items": insufficient})

    for product_id, qty in totals.items():
        reserve(product_id, qty)

    return products


def list_below_threshold() -> list[Product]:
    """Products whose quantity is at or below their low-stock threshold."""
    return (
        db.session.query(Product)
        .filter(Product.quantity <= Product.low_stock_threshold)
        .order_by(Product.quantity.asc(), Product.id.asc())
        .all()
    )
