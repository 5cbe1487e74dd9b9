from abc import ABC, abstractmethod
from typing import Any

from models.payment import (
    PaymentAmount,
    PaymentOptions,
    PaymentInfo,
    PaymentCharge,
    PaymentIntentResult,
    PaymentResult,
    PaymentCancelResult,
    PaymentRefundResult
)


class PaymentProviderInterface(ABC):
    """
    Capability contract every payment adapter implements.

    Adapters report failures through the returned result objects
    (success=False plus error/error_code) instead of raising, and map their
    provider's status vocabulary into PaymentStatus before returning.
    """

    provider: str
    display_name: str

    @abstractmethod
    async def initialize(self, provider_config: dict[str, Any]) -> bool:
        """Apply credentials. Returns False when they are missing or rejected."""

    @abstractmethod
    async def create_payment(self, amount: PaymentAmount,
                             options: PaymentOptions | None = None) -> PaymentIntentResult:
        ...

    @abstractmethod
    async def process_payment(self, payment_intent_id: str, payment_info: PaymentInfo,
                              charge: PaymentCharge | None = None) -> PaymentResult:
        """
        Charge the intent with the customer's payment method.

        charge carries the server-side amount of a stored transaction when
        there is one; adapters must never take amounts from payment_info.
        """

    @abstractmethod
    async def verify_payment(self, payment_id: str) -> PaymentResult:
        ...

    @abstractmethod
    async def cancel_payment(self, payment_id: str) -> PaymentCancelResult:
        ...

    @abstractmethod
    async def refund_payment(self, payment_id: str, amount: float | None = None) -> PaymentRefundResult:
        ...

    @abstractmethod
    def get_client_config(self) -> dict[str, Any]:
        """Public, non-secret settings the checkout page needs to load the provider SDK."""

    @property
    def is_initialized(self) -> bool:
        return True
