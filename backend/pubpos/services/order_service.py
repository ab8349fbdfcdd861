# Overview: Order State Machine; tables, orders and line items over the Stock Ledger.

"""
Order State Machine

WHY: A table's tab is the unit staff work with all night. Lines are added,
bumped up and down, and finally the tab is paid. Stock moves in lock-step
with every line change.

STATES:
- open -> paid      (mark_order_paid; terminal)
- open -> deleted   (last line decreased to zero)
- paid has no outgoing transitions

DESIGN PRINCIPLES:
- One open order per table (checked here, backed by a partial unique index)
- Line prices are snapshotted when the line is created
- Adding a product already on the order bumps that line instead of
  duplicating it
- Every mutation is one atomic unit: stock, lines and total commit together
  or not at all
- Mutations of one order are serialized by a per-order lock; creation and
  payment also take the day-session lock so close-day sees a stable picture
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import case
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DaySession, Order, OrderItem, Product, Staff, ORDER_OPEN, ORDER_PAID
from ..validation import ValidationError
from pubpos.time_utils import business_day_bounds, business_date, utcnow
from . import inventory_service
from .concurrency import atomic, day_session_lock, lock_for_update, order_locks, run_with_retry
from .errors import NoActiveSession, NotFound, OrderNotOpen, TableAlreadyOpen


def _check_table_number(table_number: int) -> None:
    table_count = current_app.config["TABLE_COUNT"]
    if not 1 <= table_number <= table_count:
        raise ValidationError(f"table_number must be between 1 and {table_count}")


def _locked_order(order_id: int) -> Order | None:
    return (
        lock_for_update(db.session.query(Order).filter_by(id=order_id))
        .populate_existing()
        .first()
    )


def _require_open(order: Order | None, action: str) -> Order:
    if order is None:
        raise OrderNotOpen(f"Cannot {action}: order not found")
    if order.status != ORDER_OPEN:
        raise OrderNotOpen(
            f"Cannot {action}: order {order.id} is {order.status}",
            details={"order_id": order.id, "status": order.status},
        )
    return order


def _merge_lines(order: Order, requested: list[tuple[int, int]], products: dict[int, Product]) -> None:
    lines = {item.product_id: item for item in order.items}
    for product_id, quantity in requested:
        line = lines.get(product_id)
        if line is not None:
            line.quantity += quantity
            continue
        line = OrderItem(
            product_id=product_id,
            quantity=quantity,
            price_at_sale_cents=products[product_id].price_cents,
        )
        order.items.append(line)
        lines[product_id] = line


def _locked_existing_order(order_id: int) -> Order:
    # The line was looked up before the lock; its order may be gone since
    order = _locked_order(order_id)
    if order is None:
        raise NotFound("Order not found", details={"order_id": order_id})
    return order


def _item_order_id(item_id: int) -> int:
    order_id = db.session.query(OrderItem.order_id).filter_by(id=item_id).scalar()
    if order_id is None:
        raise NotFound("Order item not found")
    return order_id


# =============================================================================
# MUTATIONS
# =============================================================================

def create_order(
    staff_id: int,
    table_number: int,
    items: list[tuple[int, int]],
    customer_name: str | None = None,
    notes: str | None = None,
) -> Order:
    """
    Open a new tab on a free table.

    Args:
        staff_id: Staff member taking the order
        table_number: Table in 1..TABLE_COUNT
        items: [(product_id, quantity), ...], at least one line

    Raises:
        NoActiveSession: the day has not been started
        TableAlreadyOpen: the table already has an open order
        InsufficientStock: any line exceeds on-hand stock (nothing reserved)
    """
    _check_table_number(table_number)
    if not items:
        raise ValidationError("An order needs at least one item")
    if not db.session.get(Staff, staff_id):
        raise NotFound("Staff member not found")

    def _op():
        try:
            with atomic():
                session = (
                    db.session.query(DaySession)
                    .filter_by(is_active=True)
                    .populate_existing()
                    .first()
                )
                if not session:
                    raise NoActiveSession("Day is not started. Please start the day first.")

                existing = db.session.query(Order.id).filter_by(
                    table_number=table_number,
                    status=ORDER_OPEN,
                ).first()
                if existing:
                    raise TableAlreadyOpen(
                        f"Table {table_number} already has an open order",
                        details={"table_number": table_number, "order_id": existing.id},
                    )

                products = inventory_service.reserve_many(items)

                order = Order(
                    staff_id=staff_id,
                    session_id=session.id,
                    table_number=table_number,
                    customer_name=customer_name,
                    notes=notes,
                    status=ORDER_OPEN,
                    created_at=utcnow(),
                )
                db.session.add(order)
                _merge_lines(order, items, products)
                order.recompute_total()
                db.session.flush()
        except IntegrityError:
            # Lost the race for the table to another writer
            raise TableAlreadyOpen(
                f"Table {table_number} already has an open order",
                details={"table_number": table_number},
            )
        return order

    with day_session_lock:
        return run_with_retry(_op)


def add_items_to_order(order_id: int, items: list[tuple[int, int]]) -> Order:
    """
    Add lines to an open order, merging products already on it.

    Raises:
        OrderNotOpen: order is paid or does not exist
        InsufficientStock: any line exceeds on-hand stock (nothing reserved)
    """
    if not items:
        raise ValidationError("items must not be empty")

    def _op():
        with atomic():
            order = _require_open(_locked_order(order_id), "add items")
            products = inventory_service.reserve_many(items)
            _merge_lines(order, items, products)
            order.recompute_total()
        return order

    with order_locks(order_id):
        return run_with_retry(_op)


def increase_item_quantity(item_id: int) -> Order:
    """Bump a line by one unit, taking one more unit of stock."""
    order_id = _item_order_id(item_id)

    def _op():
        with atomic():
            order = _require_open(_locked_existing_order(order_id), "modify items")
            item = db.session.query(OrderItem).filter_by(id=item_id).populate_existing().first()
            if not item:
                raise NotFound("Order item not found")

            inventory_service.reserve(item.product_id, 1)
            item.quantity += 1
            order.recompute_total()
        return order

    with order_locks(order_id):
        return run_with_retry(_op)


def decrease_item_quantity(item_id: int) -> Order | None:
    """
    Drop a line by one unit, returning the unit to stock.

    A line at zero is removed. If it was the order's last line the order
    itself is deleted and None is returned.
    """
    order_id = _item_order_id(item_id)

    def _op():
        with atomic():
            order = _require_open(_locked_existing_order(order_id), "modify items")
            item = db.session.query(OrderItem).filter_by(id=item_id).populate_existing().first()
            if not item:
                raise NotFound("Order item not found")

            inventory_service.release(item.product_id, 1)

            if item.quantity <= 1:
                order.items.remove(item)
            else:
                item.quantity -= 1

            if not order.items:
                db.session.delete(order)
                return None

            order.recompute_total()
        return order

    with order_locks(order_id):
        return run_with_retry(_op)


def mark_order_paid(order_id: int) -> Order:
    """
    Settle a tab. Paid is terminal; the total is frozen from here on.

    PIN authorization happens at the boundary; this only enforces that the
    order is currently open.
    """
    def _op():
        with atomic():
            order = _locked_order(order_id)
            if order is None or order.status != ORDER_OPEN:
                raise OrderNotOpen(
                    "Order not found or already paid",
                    details={"order_id": order_id},
                )
            order.status = ORDER_PAID
            order.paid_at = utcnow()
        return order

    with day_session_lock, order_locks(order_id):
        return run_with_retry(_op)


def update_order_notes(order_id: int, customer_name: str | None, notes: str | None) -> Order:
    def _op():
        with atomic():
            order = _locked_order(order_id)
            if order is None:
                raise NotFound("Order not found")
            _require_open(order, "edit notes")
            order.customer_name = customer_name
            order.notes = notes
        return order

    with order_locks(order_id):
        return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFound("Order not found", details={"order_id": order_id})
    return order


def list_open_orders() -> list[Order]:
    """Open orders with their items, by table number (the table grid)."""
    return (
        db.session.query(Order)
        .filter_by(status=ORDER_OPEN)
        .order_by(Order.table_number.asc())
        .all()
    )


def get_orders_in_date_range(start: datetime, end: datetime) -> list[Order]:
    """All orders (any status) created in [start, end], oldest first."""
    return (
        db.session.query(Order)
        .filter(Order.created_at >= start, Order.created_at <= end)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def get_orders_for_business_date(day, tz_name: str = "UTC", unbound_only: bool = False) -> list[Order]:
    """
    Orders created on a business date.

    unbound_only keeps just the orders no live day session owns; those are
    the ones a recovery closing may account for.
    """
    start, end = business_day_bounds(day, tz_name)
    query = db.session.query(Order).filter(Order.created_at >= start, Order.created_at < end)
    if unbound_only:
        query = query.filter(Order.session_id.is_(None))
    return (
        query
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def get_today_orders(tz_name: str = "UTC") -> list[Order]:
    """Today's orders: open tabs first, then newest first."""
    start, end = business_day_bounds(business_date(utcnow(), tz_name), tz_name)
    return (
        db.session.query(Order)
        .filter(Order.created_at >= start, Order.created_at < end)
        .order_by(
            case((Order.status == ORDER_OPEN, 0), else_=1),
            Order.created_at.desc(),
            Order.id.desc(),
        )
        .all()
    )


def get_session_orders(session: DaySession) -> list[Order]:
    """
    Orders that belong to a day session.

    Live sessions own the orders created while they were active. Recovery
    sessions cover the orders of their date that no live session owns.
    """
    if session.is_recovery:
        return get_orders_for_business_date(
            session.date, current_app.config.get("BUSINESS_TIMEZONE", "UTC"), unbound_only=True
        )
    return (
        db.session.query(Order)
        .filter_by(session_id=session.id)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )
