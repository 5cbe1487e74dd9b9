"""
Square adapter over the Square REST API (v2).

Square has no payment intent object: the browser SDK tokenizes the card
into a source id and the server creates the payment with it. create_payment
therefore only reserves a local intent id holding the amount, and
process_payment performs the actual CreatePayment call.
"""
import asyncio
import logging
import uuid
from typing import Any

import aiohttp

import config
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

SQUARE_VERSION = "2024-01-18"
SQUARE_BASE_URLS = {
    'sandbox': "https://connect.squareupsandbox.com",
    'production': "https://connect.squareup.com",
}

NOT_INITIALIZED = "Square payment provider not properly initialized"


def map_square_status(square_status: str | None) -> PaymentStatus:
    match square_status:
        case "COMPLETED":
            return PaymentStatus.COMPLETED
        case "APPROVED":
            # Authorized, capture still outstanding
            return PaymentStatus.PROCESSING
        case "PENDING":
            return PaymentStatus.PENDING
        case "CANCELED":
            return PaymentStatus.CANCELLED
        case _:
            return PaymentStatus.FAILED


def attempt_idempotency_key(payment_intent_id: str, source_id: str) -> str:
    """
    Idempotency key for one CreatePayment attempt.

    Resubmitting the same card token for an intent replays the same request;
    a new token after a decline is a new request and needs a new key. Square
    caps keys at 45 characters, hence the UUID5 digest.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{payment_intent_id}:{source_id}"))


def _minor_unit_factor(currency: str) -> int:
    try:
        return Currency(currency.upper()).minor_unit_factor
    except ValueError:
        return 100


class SquareApiError(Exception):
    def __init__(self, status: int, code: str, detail: str):
        super().__init__(detail)
        self.status = status
        self.code = code
        self.detail = detail


class SquarePaymentProvider(PaymentProviderInterface):
    provider = "square"
    display_name = "Square"

    def __init__(self):
        self.access_token: str | None = None
        self.application_id: str | None = None
        self.location_id: str | None = None
        self.environment = "sandbox"
        self._intents: dict[str, dict[str, Any]] = {}

    async def initialize(self, provider_config: dict[str, Any]) -> bool:
        access_token = provider_config.get('access_token')
        application_id = provider_config.get('application_id')
        location_id = provider_config.get('location_id')
        if not (access_token and application_id and location_id):
            logger.error("[Payment] Square configuration incomplete (access token, application id, location id)")
            return False
        environment = provider_config.get('environment') or "sandbox"
        if environment not in SQUARE_BASE_URLS:
            logger.error(f"[Payment] Unknown Square environment '{environment}'")
            return False
        self.access_token = access_token
        self.application_id = application_id
        self.location_id = location_id
        self.environment = environment
        return True

    @property
    def is_initialized(self) -> bool:
        return bool(self.access_token and self.location_id)

    @property
    def base_url(self) -> str:
        return SQUARE_BASE_URLS[self.environment]

    def _headers(self) -> dict[str, str]:
        return {
            'Authorization': f"Bearer {self.access_token}",
            'Square-Version': SQUARE_VERSION,
            'Content-Type': "application/json",
        }

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        """
        Call the Square API and return the decoded body.

        Raises:
            SquareApiError: non-2xx answer, network failure or timeout
        """
        timeout = aiohttp.ClientTimeout(total=config.PAYMENT_HTTP_TIMEOUT_SECONDS)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as http:
                async with http.request(method, f"{self.base_url}{path}", json=payload,
                                        headers=self._headers()) as response:
                    body = await response.json(content_type=None) or {}
                    if response.status >= 400 or body.get('errors'):
                        error = (body.get('errors') or [{}])[0]
                        raise SquareApiError(response.status, error.get('code', "UNKNOWN"),
                                             error.get('detail', f"Square API returned {response.status}"))
                    return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[Payment] Square {method} {path} failed: {e}")
            raise SquareApiError(503, "CONNECTION_ERROR", "Could not reach Square") from e

    async def create_payment(self, amount: PaymentAmount,
                             options: PaymentOptions | None = None) -> PaymentIntentResult:
        if not self.is_initialized:
            return PaymentIntentResult(provider=self.provider, error=NOT_INITIALIZED)
        intent_id = f"sq_intent_{uuid.uuid4().hex}"
        self._intents[intent_id] = {
            'amount': amount.total,
            'currency': amount.currency.upper(),
            'order_reference': options.order_reference if options else None,
            'note': options.description if options else None,
            'buyer_email': options.client_email if options else None,
        }
        return PaymentIntentResult(
            client_secret=intent_id,
            payment_intent_id=intent_id,
            provider=self.provider,
        )

    async def process_payment(self, payment_intent_id: str, payment_info: PaymentInfo,
                              charge: PaymentCharge | None = None) -> PaymentResult:
        if not self.is_initialized:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, error=NOT_INITIALIZED)
        if not payment_info.payment_method_id:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_intent_id=payment_intent_id,
                                 error="Missing card token (payment_method_id)", error_code="INVALID_CARD")

        intent = dict(self._intents.get(payment_intent_id) or {})
        if charge is not None:
            # Stored transaction, possibly reserved by another worker
            intent.update({'amount': charge.amount, 'currency': charge.currency})
            if charge.order_reference:
                intent['order_reference'] = charge.order_reference
        if intent.get('amount') is None or not intent.get('currency'):
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_intent_id=payment_intent_id,
                                 error=f"Unknown payment intent {payment_intent_id}", error_code="NOT_FOUND")

        currency = intent['currency'].upper()
        payload = {
            'idempotency_key': attempt_idempotency_key(payment_intent_id, payment_info.payment_method_id),
            'source_id': payment_info.payment_method_id,
            'amount_money': {
                'amount': int(round(intent['amount'] * _minor_unit_factor(currency))),
                'currency': currency,
            },
            'location_id': self.location_id,
            'autocomplete': True,
        }
        if intent.get('order_reference'):
            payload['reference_id'] = intent['order_reference']
        if intent.get('note'):
            payload['note'] = intent['note']
        if intent.get('buyer_email'):
            payload['buyer_email_address'] = intent['buyer_email']

        try:
            body = await self._request("POST", "/v2/payments", payload)
        except SquareApiError as e:
            logger.warning(f"[Payment] Square payment for {payment_intent_id} failed: {e.code}")
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_intent_id=payment_intent_id,
                                 payment_method_id=payment_info.payment_method_id,
                                 error=e.detail, error_code=e.code)

        square_payment = body.get('payment', {})
        status = map_square_status(square_payment.get('status'))
        self._intents.pop(payment_intent_id, None)
        return PaymentResult(
            success=status != PaymentStatus.FAILED,
            status=status,
            payment_id=square_payment.get('id'),
            payment_intent_id=payment_intent_id,
            payment_method_id=payment_info.payment_method_id,
            provider_data={
                'provider': self.provider,
                'squareStatus': square_payment.get('status'),
                'receiptUrl': square_payment.get('receipt_url'),
                'cardBrand': square_payment.get('card_details', {}).get('card', {}).get('card_brand'),
                'last4': square_payment.get('card_details', {}).get('card', {}).get('last_4'),
            },
        )

    async def verify_payment(self, payment_id: str) -> PaymentResult:
        if not self.is_initialized:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, error=NOT_INITIALIZED)
        try:
            body = await self._request("GET", f"/v2/payments/{payment_id}")
        except SquareApiError as e:
            return PaymentResult(success=False, status=PaymentStatus.FAILED, payment_id=payment_id,
                                 error=e.detail, error_code=e.code)
        square_payment = body.get('payment', {})
        status = map_square_status(square_payment.get('status'))
        if square_payment.get('refunded_money', {}).get('amount') and status == PaymentStatus.COMPLETED:
            total = square_payment.get('total_money', {}).get('amount', 0)
            if square_payment['refunded_money']['amount'] >= total:
                status = PaymentStatus.REFUNDED
        money = square_payment.get('total_money', {})
        currency = money.get('currency', "USD")
        return PaymentResult(
            success=status != PaymentStatus.FAILED,
            status=status,
            payment_id=payment_id,
            provider_data={
                'provider': self.provider,
                'squareStatus': square_payment.get('status'),
                'amount': money.get('amount', 0) / _minor_unit_factor(currency),
                'currency': currency,
                'referenceId': square_payment.get('reference_id'),
            },
        )

    async def cancel_payment(self, payment_id: str) -> PaymentCancelResult:
        if not self.is_initialized:
            return PaymentCancelResult(success=False, error=NOT_INITIALIZED)
        if self._intents.pop(payment_id, None) is not None:
            # Never submitted to Square; dropping the reservation is enough
            return PaymentCancelResult(success=True)
        try:
            await self._request("POST", f"/v2/payments/{payment_id}/cancel")
        except SquareApiError as e:
            return PaymentCancelResult(success=False, error=e.detail, error_code=e.code)
        return PaymentCancelResult(success=True)

    async def refund_payment(self, payment_id: str, amount: float | None = None) -> PaymentRefundResult:
        if not self.is_initialized:
            return PaymentRefundResult(success=False, error=NOT_INITIALIZED)
        try:
            body = await self._request("GET", f"/v2/payments/{payment_id}")
            square_payment = body.get('payment', {})
            if square_payment.get('status') != "COMPLETED":
                return PaymentRefundResult(
                    success=False, error=f"Cannot refund payment with status: {square_payment.get('status')}")
            money = square_payment.get('total_money', {})
            currency = money.get('currency', "USD")
            factor = _minor_unit_factor(currency)
            refundable = money.get('amount', 0) - square_payment.get('refunded_money', {}).get('amount', 0)
            minor_amount = refundable if amount is None else int(round(amount * factor))
            if minor_amount <= 0 or minor_amount > refundable:
                return PaymentRefundResult(success=False,
                                           error=f"Refund amount must be between 0 and {refundable / factor}")
            body = await self._request("POST", "/v2/refunds", {
                'idempotency_key': str(uuid.uuid4()),
                'payment_id': payment_id,
                'amount_money': {'amount': minor_amount, 'currency': currency},
            })
        except SquareApiError as e:
            return PaymentRefundResult(success=False, error=e.detail, error_code=e.code)
        refund = body.get('refund', {})
        return PaymentRefundResult(success=True, refund_id=refund.get('id'), amount=minor_amount / factor)

    def get_client_config(self) -> dict[str, Any]:
        if not (self.application_id and self.location_id):
            return {}
        return {
            'applicationId': self.application_id,
            'locationId': self.location_id,
            'environment': self.environment,
        }
