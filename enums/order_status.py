from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"          # Created at checkout, nothing charged yet
    PROCESSING = "processing"    # Payment submitted or order being prepared
    PAID = "paid"
    COMPLETED = "completed"      # Fulfilled
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"            # Payment declined; the customer may retry


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"

    @property
    def price(self) -> float:
        return {
            ShippingMethod.STANDARD: 9.99,
            ShippingMethod.EXPRESS: 19.99,
            ShippingMethod.OVERNIGHT: 29.99,
        }[self]

    @property
    def display_name(self) -> str:
        return f"{self.value.capitalize()} Shipping"
