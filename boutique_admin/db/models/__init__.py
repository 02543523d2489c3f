"""
Модели базы данных.

Импортирует все модели для корректной работы SQLAlchemy.
"""

from .attribute import Color, Size
from .base import Base
from .category import Category
from .order import ORDER_STATUSES, Order, OrderItem
from .product import Product, ProductColor, SizeStock
from .product_image import ProductImage
from .user import User

__all__ = [
    "Base",
    "Category",
    "Color",
    "Size",
    "Product",
    "ProductColor",
    "SizeStock",
    "ProductImage",
    "Order",
    "OrderItem",
    "ORDER_STATUSES",
    "User",
]
