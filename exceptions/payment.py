"""
Payment-related exceptions.

Two families live here:
- PaymentException subclasses raised by the PaymentService facade
  (unknown provider, failed initialization, missing transaction).
- PaymentError subclasses describing a provider-side failure, carrying a
  machine code, an HTTP status and a customer-safe message.
"""

from .base import StorefrontException


class PaymentException(StorefrontException):
    """Base exception for payment-related errors."""
    pass


class PaymentProviderNotFoundException(PaymentException):
    """Raised when no registered provider matches the requested id."""

    def __init__(self, provider_id: str | None, available: list[str] | None = None):
        if provider_id:
            message = f"Payment provider '{provider_id}' not found"
        else:
            message = "No payment provider available"
        super().__init__(message, details={'provider_id': provider_id, 'available': available or []})
        self.provider_id = provider_id
        self.available = available or []


class PaymentProviderInitializationException(PaymentException):
    """Raised when a provider's initialize() reports failure."""

    def __init__(self, provider_id: str):
        super().__init__(
            f"Failed to initialize payment provider '{provider_id}'",
            details={'provider_id': provider_id}
        )
        self.provider_id = provider_id


class PaymentTransactionNotFoundException(PaymentException):
    """Raised when no stored transaction matches a payment or intent id."""

    def __init__(self, payment_id: str):
        super().__init__(
            f"Payment transaction {payment_id} not found",
            details={'payment_id': payment_id}
        )
        self.payment_id = payment_id


class PaymentError(PaymentException):
    """
    Provider-side payment failure.

    Attributes:
        code: Stable machine-readable error code (e.g. PAYMENT_DECLINED)
        status_code: HTTP status to answer with
        provider_code: Raw code reported by Square/Stripe, if any
        user_message: Message that is safe to show to the customer
    """

    default_user_message = "An error occurred while processing your payment."

    def __init__(self, message: str, code: str = "PAYMENT_ERROR", status_code: int = 400,
                 provider_code: str | None = None, user_message: str | None = None):
        super().__init__(message, details={'code': code, 'provider_code': provider_code})
        self.code = code
        self.status_code = status_code
        self.provider_code = provider_code
        self.user_message = user_message or self.default_user_message

    def to_dict(self) -> dict:
        error = {
            'code': self.code,
            'message': self.message,
            'userMessage': self.user_message,
        }
        if self.provider_code:
            error['providerCode'] = self.provider_code
        return {'error': error}


class PaymentConfigurationError(PaymentError):
    """Provider is missing credentials or was never initialized."""

    def __init__(self, message: str, provider_code: str | None = None):
        super().__init__(
            message,
            code="PAYMENT_CONFIGURATION_ERROR",
            status_code=500,
            provider_code=provider_code,
            user_message="The payment system is not properly configured. "
                         "Please try again later or contact support."
        )


class PaymentValidationError(PaymentError):
    """Card or payment details were rejected as malformed."""

    def __init__(self, message: str, validation_errors: dict[str, str], provider_code: str | None = None):
        super().__init__(
            message,
            code="PAYMENT_VALIDATION_ERROR",
            status_code=400,
            provider_code=provider_code,
            user_message="There was a problem with your payment information. "
                         "Please check your details and try again."
        )
        self.validation_errors = validation_errors

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['validationErrors'] = self.validation_errors
        return data


class PaymentProcessingError(PaymentError):
    """Generic failure while the provider handled the payment."""

    def __init__(self, message: str, provider_code: str | None = None, user_message: str | None = None):
        super().__init__(
            message,
            code="PAYMENT_PROCESSING_ERROR",
            status_code=400,
            provider_code=provider_code,
            user_message=user_message or "There was an error processing your payment. "
                                         "Please try again or use a different payment method."
        )


class PaymentDeclinedError(PaymentError):
    """Issuer declined the charge."""

    def __init__(self, message: str, provider_code: str | None = None, user_message: str | None = None):
        super().__init__(
            message,
            code="PAYMENT_DECLINED",
            status_code=400,
            provider_code=provider_code,
            user_message=user_message or "Your payment was declined. "
                                         "Please try a different payment method or contact your bank."
        )


class PaymentAuthorizationError(PaymentError):
    """Payment needs an extra customer step (3-D Secure, CVV/AVS check)."""

    def __init__(self, message: str, redirect_url: str | None = None, provider_code: str | None = None):
        super().__init__(
            message,
            code="PAYMENT_AUTHORIZATION_REQUIRED",
            status_code=402,
            provider_code=provider_code,
            user_message="Your payment requires additional authorization. "
                         "Please follow the instructions to complete the payment."
        )
        self.redirect_url = redirect_url

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.redirect_url:
            data['redirectUrl'] = self.redirect_url
        return data


# Square codes are upper-case, Stripe codes lower-case
PROVIDER_ERROR_MESSAGES: dict[str, str] = {
    # Square
    "CARD_DECLINED": "Your card was declined. Please try a different payment method.",
    "CVV_FAILURE": "Your card's security code is incorrect. Please check and try again.",
    "EXPIRED_CARD": "Your card has expired. Please use a different card.",
    "INSUFFICIENT_FUNDS": "Your card has insufficient funds. Please use a different payment method.",
    "INVALID_CARD": "Your card information is invalid. Please check and try again.",
    "INVALID_EXPIRATION": "Your card's expiration date is invalid. Please check and try again.",

    # Stripe
    "card_declined": "Your card was declined. Please try a different payment method.",
    "incorrect_cvc": "Your card's security code is incorrect. Please check and try again.",
    "expired_card": "Your card has expired. Please use a different card.",
    "insufficient_funds": "Your card has insufficient funds. Please use a different payment method.",
    "invalid_card_number": "Your card number is invalid. Please check and try again.",
    "invalid_expiry_month": "Your card's expiration month is invalid. Please check and try again.",
    "invalid_expiry_year": "Your card's expiration year is invalid. Please check and try again.",
    "processing_error": "An error occurred while processing your card. Please try again later.",
}

_DECLINED_CODES = {"CARD_DECLINED", "card_declined", "INSUFFICIENT_FUNDS", "insufficient_funds"}
_AUTHORIZATION_CODES = {"VERIFY_CVV", "VERIFY_AVS", "authentication_required", "requires_action"}
_VALIDATION_FIELDS = {
    "INVALID_CARD": ("cardNumber", "Invalid card number"),
    "invalid_card_number": ("cardNumber", "Invalid card number"),
    "INVALID_EXPIRATION": ("expiryDate", "Invalid expiration date"),
    "invalid_expiry_month": ("expiryDate", "Invalid expiration date"),
    "invalid_expiry_year": ("expiryDate", "Invalid expiration date"),
    "incorrect_cvc": ("cvv", "Invalid security code"),
}


def create_payment_error_from_provider(provider: str, error_code: str, message: str) -> PaymentError:
    """
    Build the matching PaymentError subclass for a raw provider error code.

    Args:
        provider: Provider id the error came from (kept for logging by callers)
        error_code: Provider error code (Square or Stripe vocabulary)
        message: Provider error message

    Returns:
        PaymentDeclinedError, PaymentAuthorizationError, PaymentValidationError
        or PaymentProcessingError as a fallback
    """
    user_message = PROVIDER_ERROR_MESSAGES.get(error_code)

    if error_code in _DECLINED_CODES:
        return PaymentDeclinedError(message, error_code, user_message)

    if error_code in _AUTHORIZATION_CODES:
        return PaymentAuthorizationError(message, None, error_code)

    if error_code in _VALIDATION_FIELDS:
        field, field_message = _VALIDATION_FIELDS[error_code]
        return PaymentValidationError(message, {field: field_message}, error_code)

    return PaymentProcessingError(message, error_code, user_message)
