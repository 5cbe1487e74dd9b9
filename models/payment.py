"""
Value objects exchanged with payment provider adapters.

These never touch the database; PaymentTransaction (payment_transaction.py)
is the persisted record of a payment.
"""
from typing import Any

from pydantic import Field

from enums.payment_provider import PaymentMethodType
from enums.payment_status import PaymentStatus
from models.base import CamelModel


class PaymentAmount(CamelModel):
    subtotal: float = Field(..., ge=0)
    tax: float = Field(default=0.0, ge=0)
    shipping: float = Field(default=0.0, ge=0)
    total: float = Field(..., gt=0)
    currency: str = "USD"

    def to_minor_units(self, factor: int = 100) -> int:
        """Total in the smallest currency unit (cents), as both provider APIs expect."""
        return int(round(self.total * factor))


class PaymentOptions(CamelModel):
    payment_method_types: list[PaymentMethodType] = Field(default_factory=list)
    client_name: str | None = None
    client_email: str | None = None
    order_reference: str | None = None
    description: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class PaymentInfo(CamelModel):
    type: PaymentMethodType = PaymentMethodType.CREDIT_CARD
    provider: str | None = None
    cardholder_name: str | None = None
    # Card numbers never reach the server: only provider tokens/ids do
    payment_method_id: str | None = None
    payment_intent_id: str | None = None
    billing_address_same_as_shipping: bool = True
    provider_data: dict[str, Any] = Field(default_factory=dict)


class PaymentCharge(CamelModel):
    """
    Amount recorded server side when the intent was created.

    Built by PaymentService from the stored transaction and handed to the
    adapter next to the client's PaymentInfo, never parsed from a request.
    """
    amount: float = Field(..., gt=0)
    currency: str
    order_reference: str | None = None


class PaymentIntentResult(CamelModel):
    client_secret: str | None = None
    payment_intent_id: str | None = None
    provider: str | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.payment_intent_id is not None


class PaymentResult(CamelModel):
    success: bool
    status: PaymentStatus
    payment_id: str | None = None
    payment_method_id: str | None = None
    payment_intent_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    provider_data: dict[str, Any] = Field(default_factory=dict)


class PaymentCancelResult(CamelModel):
    success: bool
    error: str | None = None
    error_code: str | None = None


class PaymentRefundResult(CamelModel):
    success: bool
    refund_id: str | None = None
    amount: float | None = None
    error: str | None = None
    error_code: str | None = None
