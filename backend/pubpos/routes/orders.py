# Overview: Command handlers for tables, orders and order lines.

from flask import current_app, g

from ..decorators import command, require_staff_pin
from ..services import order_service
from ..validation import optional_text, parse_order_items, require_int


def _with_items(order):
    return order.to_dict_with_items() if order is not None else None


@command("create_order")
def create_order_command(payload: dict):
    """
    Open a tab on a table.

    Request body:
    {
        "order": {
            "staff_id": 1,
            "table_number": 4,
            "customer_name": "Mika",     (optional)
            "notes": "no ice",           (optional)
            "items": [{"product_id": 3, "quantity": 2}]
        }
    }
    """
    data = payload.get("order") if isinstance(payload.get("order"), dict) else payload
    order = order_service.create_order(
        staff_id=require_int(data, "staff_id"),
        table_number=require_int(data, "table_number"),
        items=parse_order_items(data.get("items")),
        customer_name=optional_text(data, "customer_name"),
        notes=optional_text(data, "notes"),
    )
    return _with_items(order)


@command("get_open_orders")
def get_open_orders_command(payload: dict):
    return [order.to_dict_with_items() for order in order_service.list_open_orders()]


@command("get_today_orders")
def get_today_orders_command(payload: dict):
    tz_name = current_app.config["BUSINESS_TIMEZONE"]
    return [order.to_dict_with_items() for order in order_service.get_today_orders(tz_name)]


@command("get_order")
def get_order_command(payload: dict):
    return _with_items(order_service.get_order(require_int(payload, "id")))


@command("add_items_to_order")
def add_items_to_order_command(payload: dict):
    order = order_service.add_items_to_order(
        require_int(payload, "order_id"),
        parse_order_items(payload.get("items")),
    )
    return _with_items(order)


@command("mark_order_paid")
@require_staff_pin
def mark_order_paid_command(payload: dict):
    """
    Close a table. Requires staff_id, plus pin when that staff member has one.
    """
    order = order_service.mark_order_paid(require_int(payload, "order_id"))
    current_app.logger.info(
        "Order %s on table %s paid (%s cents) by staff %s",
        order.id, order.table_number, order.total_cents, g.acting_staff.id,
    )
    return _with_items(order)


@command("increase_item_quantity")
def increase_item_quantity_command(payload: dict):
    return _with_items(order_service.increase_item_quantity(require_int(payload, "order_item_id")))


@command("decrease_item_quantity")
def decrease_item_quantity_command(payload: dict):
    # null when the last line went and the order was deleted
    return _with_items(order_service.decrease_item_quantity(require_int(payload, "order_item_id")))


@command("update_order_notes")
def update_order_notes_command(payload: dict):
    order = order_service.update_order_notes(
        require_int(payload, "order_id"),
        optional_text(payload, "customer_name"),
        optional_text(payload, "notes"),
    )
    return _with_items(order)
