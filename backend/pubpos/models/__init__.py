from .catalog import Category, Product
from .staff import Staff
from .orders import Order, OrderItem, ORDER_OPEN, ORDER_PAID
from .day_sessions import DaySession

__all__ = [
    'Category', 'Product',
    'Staff',
    'Order', 'OrderItem', 'ORDER_OPEN', 'ORDER_PAID',
    'DaySession',
]
