"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.category import Category
from models.product import Product, ProductVariant, product_categories
from models.cart import Cart
from models.cartItem import CartItem
from models.payment_transaction import PaymentTransaction
from models.order import Order, OrderItem, OrderStatusHistory

__all__ = [
    'Base',
    'Category',
    'Product',
    'ProductVariant',
    'product_categories',
    'Cart',
    'CartItem',
    'PaymentTransaction',
    'Order',
    'OrderItem',
    'OrderStatusHistory',
]
