"""
Error Handler Utility for HTTP Routes

Provides centralized error handling for the JSON API with:
- Automatic exception to HTTP status mapping
- Consistent error body shape
- Logging for debugging

Usage (registered once in app.py):
    from utils.error_handler import http_status_for, error_payload

    @app.exception_handler(StorefrontException)
    async def storefront_exception_handler(request, exc):
        return JSONResponse(status_code=http_status_for(exc), content=error_payload(exc))
"""

import logging

from exceptions import (
    StorefrontException,
    CategoryNotFoundException,
    CategoryFetchException,
    CategoryWriteException,
    CategoryCycleException,
    InvalidHighlightPriorityException,
    ProductNotFoundException,
    ProductFetchException,
    InvalidProductDataException,
    InvalidCursorException,
    CartNotFoundException,
    CartItemNotFoundException,
    InvalidCartQuantityException,
    InsufficientStockException,
    CartOwnerMissingException,
    OrderNotFoundException,
    InvalidOrderStatusTransitionException,
    InvalidOrderDataException,
    EmptyCartCheckoutException,
    PaymentProviderNotFoundException,
    PaymentProviderInitializationException,
    PaymentTransactionNotFoundException,
    PaymentError,
    WebhookSignatureException,
)

# Most specific classes first; first isinstance match wins
_STATUS_MAPPING: list[tuple[type[StorefrontException], int]] = [
    # 404
    (CategoryNotFoundException, 404),
    (ProductNotFoundException, 404),
    (CartNotFoundException, 404),
    (CartItemNotFoundException, 404),
    (PaymentTransactionNotFoundException, 404),
    (OrderNotFoundException, 404),

    # 400
    (InvalidCursorException, 400),
    (CartOwnerMissingException, 400),
    (EmptyCartCheckoutException, 400),
    (PaymentProviderNotFoundException, 400),

    # 403
    (WebhookSignatureException, 403),

    # 422
    (CategoryCycleException, 422),
    (InvalidHighlightPriorityException, 422),
    (InvalidProductDataException, 422),
    (InvalidCartQuantityException, 422),
    (InsufficientStockException, 422),
    (InvalidOrderStatusTransitionException, 422),
    (InvalidOrderDataException, 422),

    # 500
    (CategoryFetchException, 500),
    (CategoryWriteException, 500),
    (ProductFetchException, 500),
    (PaymentProviderInitializationException, 500),
]


def http_status_for(exception: StorefrontException) -> int:
    """
    Resolve the HTTP status code for a service exception.

    Args:
        exception: The custom exception raised by a service

    Returns:
        HTTP status code (400 when the type is not mapped)
    """
    if isinstance(exception, PaymentError):
        return exception.status_code
    for exception_type, status_code in _STATUS_MAPPING:
        if isinstance(exception, exception_type):
            return status_code
    return 400


def error_payload(exception: StorefrontException) -> dict:
    """
    Build the JSON body for a service exception.

    Server-side failures (5xx) hide the internal reason from the client;
    the full message is logged instead.

    Args:
        exception: The custom exception raised by a service

    Returns:
        Dict with an "error" object
    """
    status_code = http_status_for(exception)

    if status_code >= 500:
        logging.error(f"Service error handled: {type(exception).__name__} - {str(exception)}")
    else:
        logging.warning(f"Service error handled: {type(exception).__name__} - {str(exception)}")

    if isinstance(exception, PaymentError):
        return exception.to_dict()

    message = str(exception)
    if status_code >= 500:
        # Keep the fixed prefix ("Failed to fetch categories") but not the driver error
        message = message.split(":", 1)[0]

    payload = {
        'error': {
            'code': type(exception).__name__,
            'message': message,
        }
    }
    if isinstance(exception, (InvalidProductDataException, InvalidOrderDataException)):
        payload['error']['fields'] = exception.errors
    return payload
