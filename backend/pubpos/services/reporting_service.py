# Overview: Reporting Aggregator; read-only rollups over orders for a day session.

"""
Reporting Aggregator

Pure functions of their input: nothing here touches the session or the
database, so a report can be rebuilt any number of times. Revenue always
uses the price captured on each line, never the live product price.
"""

from __future__ import annotations

from typing import Iterable

from ..models import ORDER_PAID
from ..models.money import format_cents


def paid_orders(orders: Iterable) -> list:
    return [order for order in orders if order.status == ORDER_PAID]


def summarize_orders(orders: Iterable) -> tuple[int, int]:
    """
    (total_revenue_cents, total_orders) over the paid orders in `orders`.

    The single aggregation rule shared by close-day, recovery and the day
    summary.
    """
    settled = paid_orders(orders)
    return sum(order.total_cents for order in settled), len(settled)


def aggregate_product_sales(orders: Iterable) -> list[dict]:
    """
    Group every line across `orders` by product name.

    Rows are sorted by revenue, highest first; ties keep the order in which
    the product was first seen.
    """
    rows: dict[str, dict] = {}
    for order in orders:
        for item in order.items:
            name = item.product_name or f"Product {item.product_id}"
            row = rows.get(name)
            if row is None:
                row = {"name": name, "quantity": 0, "revenue_cents": 0}
                rows[name] = row
            row["quantity"] += item.quantity
            row["revenue_cents"] += item.price_at_sale_cents * item.quantity

    result = sorted(rows.values(), key=lambda r: r["revenue_cents"], reverse=True)
    for row in result:
        row["revenue"] = format_cents(row["revenue_cents"])
    return result


def build_day_summary(session, orders: Iterable, day=None) -> dict:
    """
    Summary of one day session (active or closed) for display and export.

    Totals and the product rollup cover paid orders; the order list shows
    every order in the session.
    """
    orders = list(orders)
    settled = paid_orders(orders)
    revenue_cents, order_count = summarize_orders(settled)

    if day is None:
        day = session.date
    return {
        "session": session.to_dict(),
        "date": day.isoformat() if day else None,
        "total_revenue_cents": revenue_cents,
        "total_revenue": format_cents(revenue_cents),
        "total_orders": order_count,
        "orders": [order.to_dict_with_items() for order in orders],
        "product_sales": aggregate_product_sales(settled),
    }
