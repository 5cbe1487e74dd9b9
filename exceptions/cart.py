"""
Cart-related exceptions.
"""

from .base import StorefrontException


class CartException(StorefrontException):
    """Base exception for cart-related errors."""
    pass


class CartNotFoundException(CartException):
    """Raised when a cart id does not resolve."""

    def __init__(self, cart_id: int):
        super().__init__(
            f"Cart {cart_id} not found",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class CartItemNotFoundException(CartException):
    """Raised when cart item not found."""

    def __init__(self, cart_item_id: int):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            details={'cart_item_id': cart_item_id}
        )
        self.cart_item_id = cart_item_id


class InvalidCartQuantityException(CartException):
    """Raised when a quantity is zero or negative where a positive one is required."""

    def __init__(self, quantity: int):
        super().__init__(
            f"Quantity must be greater than zero (got: {quantity})",
            details={'quantity': quantity}
        )
        self.quantity = quantity


class InsufficientStockException(CartException):
    """Raised when requested quantity exceeds available stock."""

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details={'product_id': product_id, 'requested': requested, 'available': available}
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class CartOwnerMissingException(CartException):
    """Raised when a cart is requested without a user id or anonymous id."""

    def __init__(self):
        super().__init__("A cart needs either a user id or an anonymous id")
