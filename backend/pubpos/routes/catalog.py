# Overview: Command handlers for categories, products and low-stock alerts.

from ..decorators import command
from ..services import inventory_service, products_service
from ..validation import require_int


def _unwrap(payload: dict, key: str) -> dict:
    """Accept {"product": {...}} as well as the flat fields."""
    inner = payload.get(key)
    return inner if isinstance(inner, dict) else payload


# =============================================================================
# CATEGORIES
# =============================================================================

@command("get_categories")
def get_categories_command(payload: dict):
    return [c.to_dict() for c in products_service.list_categories()]


@command("create_category")
def create_category_command(payload: dict):
    return products_service.create_category(payload.get("name")).to_dict()


@command("delete_category")
def delete_category_command(payload: dict):
    products_service.delete_category(require_int(payload, "id"))
    return None


# =============================================================================
# PRODUCTS
# =============================================================================

@command("get_products")
def get_products_command(payload: dict):
    return [p.to_dict() for p in products_service.list_products()]


@command("create_product")
def create_product_command(payload: dict):
    """
    Request body:
    {
        "product": {
            "name": "Heineken",
            "price": "5.00",
            "quantity": 48,
            "category_id": 1,          (optional)
            "low_stock_threshold": 6   (optional)
        }
    }
    """
    return products_service.create_product(_unwrap(payload, "product")).to_dict()


@command("update_product")
def update_product_command(payload: dict):
    data = _unwrap(payload, "product")
    return products_service.update_product(require_int(data, "id"), data).to_dict()


@command("delete_product")
def delete_product_command(payload: dict):
    products_service.delete_product(require_int(payload, "id"))
    return None


@command("get_low_stock")
def get_low_stock_command(payload: dict):
    return [p.to_dict() for p in inventory_service.list_below_threshold()]
