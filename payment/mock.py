import logging
import uuid
from typing import Any

from enums.payment_status import PaymentStatus
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
from payment.provider import PaymentProviderInterface

logger = logging.getLogger(__name__)

DECLINED_PAYMENT_METHOD = "pm_card_declined"


class MockPaymentProvider(PaymentProviderInterface):
    """
    In-memory provider for development and tests.

    Payments succeed unless the payment method id is "pm_card_declined".
    State lives only as long as the instance.
    """

    provider = "mock"
    display_name = "Mock Provider (Testing)"

    def __init__(self):
        self._intents: dict[str, dict[str, Any]] = {}
        self._payments: dict[str, str] = {}

    async def initialize(self, provider_config: dict[str, Any]) -> bool:
        return True

    async def create_payment(self, amount: PaymentAmount,
                             options: PaymentOptions | None = None) -> PaymentIntentResult:
        intent_id = f"mock_intent_{uuid.uuid4().hex[:16]}"
        self._intents[intent_id] = {
            'amount': amount.total,
            'currency': amount.currency,
            'status': PaymentStatus.PENDING,
            'refunded': 0.0,
            'order_reference': options.order_reference if options else None,
        }
        return PaymentIntentResult(
            client_secret=f"{intent_id}_secret",
            payment_intent_id=intent_id,
            provider=self.provider,
        )

    async def process_payment(self, payment_intent_id: str, payment_info: PaymentInfo,
                              charge: PaymentCharge | None = None) -> PaymentResult:
        intent = self._intents.get(payment_intent_id)
        if intent is None:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_intent_id=payment_intent_id,
                                 error=f"Unknown payment intent {payment_intent_id}", error_code="not_found")

        if intent['status'] in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            # Already charged: answer with the original payment, never a second one
            return PaymentResult(
                success=True,
                status=intent['status'],
                payment_id=intent['payment_id'],
                payment_intent_id=payment_intent_id,
                payment_method_id=intent.get('payment_method_id'),
                provider_data={'provider': self.provider},
            )
        if intent['status'] == PaymentStatus.CANCELLED:
            return PaymentResult(success=False, status=PaymentStatus.CANCELLED, payment_intent_id=payment_intent_id,
                                 error="Payment intent was cancelled", error_code="payment_intent_unexpected_state")

        if payment_info.payment_method_id == DECLINED_PAYMENT_METHOD:
            logger.info(f"[Payment] Mock decline for intent {payment_intent_id}")
            intent['status'] = PaymentStatus.FAILED
            return PaymentResult(
                success=False,
                status=PaymentStatus.FAILED,
                payment_intent_id=payment_intent_id,
                payment_method_id=payment_info.payment_method_id,
                error="Your card was declined.",
                error_code="card_declined",
                provider_data={'provider': self.provider},
            )

        payment_id = f"mock_payment_{uuid.uuid4().hex[:16]}"
        intent['status'] = PaymentStatus.COMPLETED
        intent['payment_id'] = payment_id
        intent['payment_method_id'] = payment_info.payment_method_id
        self._payments[payment_id] = payment_intent_id
        return PaymentResult(
            success=True,
            status=PaymentStatus.COMPLETED,
            payment_id=payment_id,
            payment_intent_id=payment_intent_id,
            payment_method_id=payment_info.payment_method_id,
            provider_data={'provider': self.provider},
        )

    def _lookup(self, payment_id: str) -> tuple[str | None, dict[str, Any] | None]:
        intent_id = self._payments.get(payment_id, payment_id)
        return intent_id, self._intents.get(intent_id)

    async def verify_payment(self, payment_id: str) -> PaymentResult:
        intent_id, intent = self._lookup(payment_id)
        if intent is None:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_id=payment_id,
                                 error=f"Unknown payment {payment_id}", error_code="not_found")
        status = intent['status']
        return PaymentResult(
            success=status != PaymentStatus.FAILED,
            status=status,
            payment_id=intent.get('payment_id', payment_id),
            payment_intent_id=intent_id,
            provider_data={'provider': self.provider, 'amount': intent['amount'], 'currency': intent['currency']},
        )

    async def cancel_payment(self, payment_id: str) -> PaymentCancelResult:
        _, intent = self._lookup(payment_id)
        if intent is None:
            return PaymentCancelResult(success=False, error=f"Unknown payment {payment_id}", error_code="not_found")
        if intent['status'] == PaymentStatus.COMPLETED:
            return PaymentCancelResult(success=False,
                                       error="Payment already completed. Use refund instead of cancel.")
        intent['status'] = PaymentStatus.CANCELLED
        return PaymentCancelResult(success=True)

    async def refund_payment(self, payment_id: str, amount: float | None = None) -> PaymentRefundResult:
        _, intent = self._lookup(payment_id)
        if intent is None:
            return PaymentRefundResult(success=False, error=f"Unknown payment {payment_id}", error_code="not_found")
        if intent['status'] not in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            return PaymentRefundResult(success=False,
                                       error=f"Cannot refund payment with status: {intent['status'].value}")
        remaining = round(intent['amount'] - intent['refunded'], 2)
        refund_amount = remaining if amount is None else amount
        if refund_amount <= 0 or refund_amount > remaining:
            return PaymentRefundResult(success=False, error=f"Refund amount must be between 0 and {remaining}")
        intent['refunded'] = round(intent['refunded'] + refund_amount, 2)
        if intent['refunded'] >= intent['amount']:
            intent['status'] = PaymentStatus.REFUNDED
        return PaymentRefundResult(success=True, refund_id=f"mock_refund_{uuid.uuid4().hex[:16]}",
                                   amount=refund_amount)

    def get_client_config(self) -> dict[str, Any]:
        return {'isMock': True}
