"""
Order-related exceptions.
"""

from .base import StorefrontException


class OrderException(StorefrontException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when an order id or order number does not resolve (or belongs to someone else)."""

    def __init__(self, reference: int | str):
        super().__init__(
            f"Order {reference} not found",
            details={'order': reference}
        )
        self.reference = reference


class InvalidOrderStatusTransitionException(OrderException):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, field: str, current: str, requested: str):
        super().__init__(
            f"Cannot change order {field} from '{current}' to '{requested}'",
            details={'field': field, 'current': current, 'requested': requested}
        )
        self.field = field
        self.current = current
        self.requested = requested


class InvalidOrderDataException(OrderException):
    """Raised when order totals or lines fail validation."""

    def __init__(self, errors: dict[str, str]):
        fields = ', '.join(sorted(errors))
        super().__init__(
            f"Invalid order data: {fields}",
            details={'errors': errors}
        )
        self.errors = errors


class EmptyCartCheckoutException(OrderException):
    """Raised when checkout is attempted with an empty cart."""

    def __init__(self, cart_id: int):
        super().__init__(
            f"Cart {cart_id} is empty",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id
