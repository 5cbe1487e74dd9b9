"""
Stripe adapter over the official stripe SDK.

The SDK is synchronous; every call runs in a worker thread and passes the
secret key per request so several configurations can coexist in one
process.
"""
import asyncio
import logging
from typing import Any

import stripe

from enums.currency import Currency
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

NOT_INITIALIZED = "Stripe payment provider not properly initialized"


def map_stripe_status(stripe_status: str | None) -> PaymentStatus:
    match stripe_status:
        case "succeeded":
            return PaymentStatus.COMPLETED
        case "processing":
            return PaymentStatus.PROCESSING
        case "canceled":
            return PaymentStatus.CANCELLED
        case "requires_payment_method" | "requires_confirmation" | "requires_action" | "requires_capture":
            return PaymentStatus.PENDING
        case _:
            return PaymentStatus.FAILED


def _error_code(error: stripe.StripeError) -> str:
    return getattr(error, 'code', None) or "processing_error"


def _minor_unit_factor(currency: str) -> int:
    try:
        return Currency(currency.upper()).minor_unit_factor
    except ValueError:
        return 100


class StripePaymentProvider(PaymentProviderInterface):
    provider = "stripe"
    display_name = "Stripe"

    def __init__(self):
        self.secret_key: str | None = None
        self.publishable_key: str | None = None
        self.webhook_secret: str | None = None

    async def initialize(self, provider_config: dict[str, Any]) -> bool:
        secret_key = provider_config.get('secret_key')
        publishable_key = provider_config.get('publishable_key')
        if not secret_key or not publishable_key:
            logger.error("[Payment] Stripe payment provider missing required configuration")
            return False
        if provider_config.get('verify_credentials', True):
            try:
                await asyncio.to_thread(stripe.Balance.retrieve, api_key=secret_key)
            except stripe.StripeError as e:
                logger.error(f"[Payment] Stripe credential check failed: {e.__class__.__name__}")
                return False
        self.secret_key = secret_key
        self.publishable_key = publishable_key
        self.webhook_secret = provider_config.get('webhook_secret')
        return True

    @property
    def is_initialized(self) -> bool:
        return self.secret_key is not None

    async def _call(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, api_key=self.secret_key, **kwargs)

    async def create_payment(self, amount: PaymentAmount,
                             options: PaymentOptions | None = None) -> PaymentIntentResult:
        if not self.is_initialized:
            return PaymentIntentResult(provider=self.provider, error=NOT_INITIALIZED)
        options = options or PaymentOptions()
        metadata = dict(options.metadata)
        if options.order_reference:
            metadata['orderReference'] = options.order_reference
        params: dict[str, Any] = {
            'amount': amount.to_minor_units(_minor_unit_factor(amount.currency)),
            'currency': amount.currency.lower(),
            'metadata': metadata,
            'automatic_payment_methods': {'enabled': True},
        }
        if options.description:
            params['description'] = options.description
        if options.client_email:
            params['receipt_email'] = options.client_email

        try:
            intent = await self._call(stripe.PaymentIntent.create, **params)
        except stripe.StripeError as e:
            logger.error(f"[Payment] Stripe create intent failed: {e.__class__.__name__} {_error_code(e)}")
            return PaymentIntentResult(provider=self.provider, error=e.user_message or str(e),
                                       error_code=_error_code(e))
        return PaymentIntentResult(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            provider=self.provider,
        )

    def _result(self, intent, payment_info: PaymentInfo | None = None) -> PaymentResult:
        status = map_stripe_status(intent.status)
        error = None
        error_code = None
        last_error = getattr(intent, 'last_payment_error', None)
        if intent.status == "requires_payment_method" and last_error:
            # A confirmed attempt was declined and Stripe wants a new method
            status = PaymentStatus.FAILED
            error = last_error.get('message') or "Payment failed"
            error_code = last_error.get('decline_code') or last_error.get('code')
        payment_method_types = getattr(intent, 'payment_method_types', None) or []
        return PaymentResult(
            success=status not in (PaymentStatus.FAILED, PaymentStatus.CANCELLED),
            status=status,
            payment_id=intent.id,
            payment_intent_id=intent.id,
            payment_method_id=payment_info.payment_method_id if payment_info else None,
            error=error,
            error_code=error_code,
            provider_data={
                'provider': self.provider,
                'stripeStatus': intent.status,
                'paymentMethodType': payment_method_types[0] if payment_method_types else None,
                'amount': intent.amount / _minor_unit_factor(intent.currency),
                'currency': intent.currency,
            },
        )

    async def process_payment(self, payment_intent_id: str, payment_info: PaymentInfo,
                              charge: PaymentCharge | None = None) -> PaymentResult:
        if not self.is_initialized:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, error=NOT_INITIALIZED)
        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, payment_intent_id)
            needs_confirm = (intent.status == "requires_confirmation"
                             or (intent.status == "requires_payment_method" and payment_info.payment_method_id))
            if needs_confirm:
                confirm_params = {}
                if payment_info.payment_method_id:
                    confirm_params['payment_method'] = payment_info.payment_method_id
                intent = await self._call(stripe.PaymentIntent.confirm, payment_intent_id, **confirm_params)
        except stripe.StripeError as e:
            logger.warning(f"[Payment] Stripe process failed for {payment_intent_id}: {_error_code(e)}")
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_intent_id=payment_intent_id,
                                 payment_method_id=payment_info.payment_method_id,
                                 error=e.user_message or str(e), error_code=_error_code(e))
        return self._result(intent, payment_info)

    async def verify_payment(self, payment_id: str) -> PaymentResult:
        if not self.is_initialized:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, error=NOT_INITIALIZED)
        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, payment_id)
        except stripe.StripeError as e:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_id=payment_id,
                                 error=e.user_message or str(e), error_code=_error_code(e))
        return self._result(intent)

    async def cancel_payment(self, payment_id: str) -> PaymentCancelResult:
        if not self.is_initialized:
            return PaymentCancelResult(success=False, error=NOT_INITIALIZED)
        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, payment_id)
            if intent.status == "succeeded":
                return PaymentCancelResult(success=False,
                                           error="Payment already completed. Use refund instead of cancel.")
            if intent.status == "canceled":
                return PaymentCancelResult(success=True)
            await self._call(stripe.PaymentIntent.cancel, payment_id)
        except stripe.StripeError as e:
            return PaymentCancelResult(success=False, error=e.user_message or str(e), error_code=_error_code(e))
        return PaymentCancelResult(success=True)

    async def refund_payment(self, payment_id: str, amount: float | None = None) -> PaymentRefundResult:
        if not self.is_initialized:
            return PaymentRefundResult(success=False, error=NOT_INITIALIZED)
        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, payment_id)
            if intent.status != "succeeded":
                return PaymentRefundResult(success=False, error=f"Cannot refund payment with status: {intent.status}")
            factor = _minor_unit_factor(intent.currency)
            params: dict[str, Any] = {'payment_intent': payment_id}
            if amount is not None:
                params['amount'] = int(round(amount * factor))
            refund = await self._call(stripe.Refund.create, **params)
        except stripe.StripeError as e:
            return PaymentRefundResult(success=False, error=e.user_message or str(e), error_code=_error_code(e))
        return PaymentRefundResult(success=True, refund_id=refund.id, amount=refund.amount / factor)

    def get_client_config(self) -> dict[str, Any]:
        if not self.publishable_key:
            return {}
        return {'publishableKey': self.publishable_key}
