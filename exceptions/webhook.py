"""
Webhook-related exceptions.
"""

from .base import StorefrontException


class WebhookSignatureException(StorefrontException):
    """Raised when a provider webhook signature is missing or does not verify."""

    def __init__(self, provider: str, reason: str):
        super().__init__(
            f"Invalid {provider} webhook signature: {reason}",
            details={'provider': provider, 'reason': reason}
        )
        self.provider = provider
        self.reason = reason
