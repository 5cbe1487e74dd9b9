"""
Product-related exceptions.
"""

from .base import StorefrontException


class ProductException(StorefrontException):
    """Base exception for product-related errors."""
    pass


class ProductNotFoundException(ProductException):
    """Raised when product not found."""

    def __init__(self, product_id: int | None = None, sku: str | None = None):
        key = f"with SKU '{sku}'" if sku is not None else product_id
        super().__init__(
            f"Product {key} not found",
            details={'product_id': product_id, 'sku': sku}
        )
        self.product_id = product_id
        self.sku = sku


class ProductFetchException(ProductException):
    """Raised when reading products from the database fails."""

    def __init__(self, reason: str):
        super().__init__(
            f"Failed to fetch products: {reason}",
            details={'reason': reason}
        )
        self.reason = reason


class InvalidProductDataException(ProductException):
    """Raised when product data fails validation (missing name, negative price, etc.)."""

    def __init__(self, errors: dict[str, str]):
        fields = ', '.join(sorted(errors))
        super().__init__(
            f"Invalid product data: {fields}",
            details={'errors': errors}
        )
        self.errors = errors


class InvalidCursorException(ProductException):
    """Raised when a pagination cursor cannot be decoded."""

    def __init__(self, cursor: str, reason: str):
        super().__init__(
            f"Invalid pagination cursor: {reason}",
            details={'cursor': cursor[:64], 'reason': reason}
        )
        self.cursor = cursor
        self.reason = reason
