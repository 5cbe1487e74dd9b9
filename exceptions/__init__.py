"""
Custom exceptions for Shopfront.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── CategoryException
│   ├── CategoryNotFoundException
│   ├── CategoryFetchException
│   ├── CategoryWriteException
│   ├── CategoryCycleException
│   └── InvalidHighlightPriorityException
├── ProductException
│   ├── ProductNotFoundException
│   ├── ProductFetchException
│   ├── InvalidProductDataException
│   └── InvalidCursorException
├── CartException
│   ├── CartNotFoundException
│   ├── CartItemNotFoundException
│   ├── InvalidCartQuantityException
│   ├── InsufficientStockException
│   └── CartOwnerMissingException
├── OrderException
│   ├── OrderNotFoundException
│   ├── InvalidOrderStatusTransitionException
│   ├── InvalidOrderDataException
│   └── EmptyCartCheckoutException
├── PaymentException
│   ├── PaymentProviderNotFoundException
│   ├── PaymentProviderInitializationException
│   ├── PaymentTransactionNotFoundException
│   └── PaymentError
│       ├── PaymentConfigurationError
│       ├── PaymentValidationError
│       ├── PaymentProcessingError
│       ├── PaymentDeclinedError
│       └── PaymentAuthorizationError
└── WebhookSignatureException

Usage:
------
Services raise specific exceptions:
    raise CategoryNotFoundException(category_id=123)

Routers let them propagate; the exception handler registered in app.py
translates them into JSON responses (see utils/error_handler.py):
    @app.exception_handler(StorefrontException)
    async def storefront_exception_handler(request, exc):
        return JSONResponse(status_code=http_status_for(exc), content=error_payload(exc))
"""

from .base import StorefrontException
from .category import (
    CategoryException,
    CategoryNotFoundException,
    CategoryFetchException,
    CategoryWriteException,
    CategoryCycleException,
    InvalidHighlightPriorityException
)
from .product import (
    ProductException,
    ProductNotFoundException,
    ProductFetchException,
    InvalidProductDataException,
    InvalidCursorException
)
from .cart import (
    CartException,
    CartNotFoundException,
    CartItemNotFoundException,
    InvalidCartQuantityException,
    InsufficientStockException,
    CartOwnerMissingException
)
from .order import (
    OrderException,
    OrderNotFoundException,
    InvalidOrderStatusTransitionException,
    InvalidOrderDataException,
    EmptyCartCheckoutException
)
from .payment import (
    PaymentException,
    PaymentProviderNotFoundException,
    PaymentProviderInitializationException,
    PaymentTransactionNotFoundException,
    PaymentError,
    PaymentConfigurationError,
    PaymentValidationError,
    PaymentProcessingError,
    PaymentDeclinedError,
    PaymentAuthorizationError,
    PROVIDER_ERROR_MESSAGES,
    create_payment_error_from_provider
)
from .webhook import WebhookSignatureException

__all__ = [
    # Base
    'StorefrontException',

    # Category
    'CategoryException',
    'CategoryNotFoundException',
    'CategoryFetchException',
    'CategoryWriteException',
    'CategoryCycleException',
    'InvalidHighlightPriorityException',

    # Product
    'ProductException',
    'ProductNotFoundException',
    'ProductFetchException',
    'InvalidProductDataException',
    'InvalidCursorException',

    # Cart
    'CartException',
    'CartNotFoundException',
    'CartItemNotFoundException',
    'InvalidCartQuantityException',
    'InsufficientStockException',
    'CartOwnerMissingException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'InvalidOrderStatusTransitionException',
    'InvalidOrderDataException',
    'EmptyCartCheckoutException',

    # Payment
    'PaymentException',
    'PaymentProviderNotFoundException',
    'PaymentProviderInitializationException',
    'PaymentTransactionNotFoundException',
    'PaymentError',
    'PaymentConfigurationError',
    'PaymentValidationError',
    'PaymentProcessingError',
    'PaymentDeclinedError',
    'PaymentAuthorizationError',
    'PROVIDER_ERROR_MESSAGES',
    'create_payment_error_from_provider',

    # Webhook
    'WebhookSignatureException',
]
