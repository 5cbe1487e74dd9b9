"""
Unit tests for Stripe webhook verification and event handling.
"""

import hashlib
import hmac
import json
import time

import pytest
import stripe
from unittest.mock import patch

from enums.payment_status import PaymentStatus
from exceptions.webhook import WebhookSignatureException
from models.payment_transaction import PaymentTransactionDTO
from processing.webhooks import construct_stripe_event, handle_stripe_event
from repositories.payment_transaction import PaymentTransactionRepository

SECRET = "whsec_unit_test"


def _stripe_signature(payload: bytes, secret: str = SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    return f"t={timestamp},v1={hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()}"


async def _stored_intent(session, intent_id: str = "pi_123", amount: float = 20.0):
    return await PaymentTransactionRepository.create(PaymentTransactionDTO(
        provider="stripe", payment_intent_id=intent_id, amount=amount, currency="USD",
    ), session)


class TestConstructStripeEvent:

    def test_valid_signature(self):
        payload = json.dumps({'id': "evt_1", 'type': "payment_intent.succeeded",
                              'data': {'object': {'id': "pi_123"}}}).encode()

        event = construct_stripe_event(payload, _stripe_signature(payload), SECRET)

        assert event['type'] == "payment_intent.succeeded"
        assert event['data']['object']['id'] == "pi_123"

    def test_wrong_secret(self):
        payload = b'{"id": "evt_1", "type": "charge.refunded"}'

        with pytest.raises(WebhookSignatureException):
            construct_stripe_event(payload, _stripe_signature(payload, "whsec_other"), SECRET)

    def test_verification_error_wrapped(self):
        error = stripe.SignatureVerificationError("bad", "sig")
        with patch.object(stripe.Webhook, "construct_event", side_effect=error):
            with pytest.raises(WebhookSignatureException) as exc_info:
                construct_stripe_event(b"{}", "t=1,v1=abc", SECRET)

        assert "signature mismatch" in str(exc_info.value)

    def test_missing_header(self):
        with pytest.raises(WebhookSignatureException):
            construct_stripe_event(b"{}", None, SECRET)


class TestHandleStripeEvent:

    @pytest.mark.asyncio
    async def test_intent_succeeded(self, test_session):
        await _stored_intent(test_session)
        event = {'type': "payment_intent.succeeded", 'data': {'object': {'id': "pi_123", 'status': "succeeded"}}}

        assert await handle_stripe_event(event, test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("pi_123", test_session)
        assert transaction.status == PaymentStatus.COMPLETED
        assert transaction.payment_id == "pi_123"

    @pytest.mark.asyncio
    async def test_payment_failed_records_error(self, test_session):
        await _stored_intent(test_session)
        event = {'type': "payment_intent.payment_failed", 'data': {'object': {
            'id': "pi_123", 'last_payment_error': {'message': "Your card has insufficient funds."},
        }}}

        await handle_stripe_event(event, test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("pi_123", test_session)
        assert transaction.status == PaymentStatus.FAILED
        assert transaction.error == "Your card has insufficient funds."

    @pytest.mark.asyncio
    async def test_partial_charge_refund(self, test_session):
        await _stored_intent(test_session)
        event = {'type': "charge.refunded", 'data': {'object': {
            'id': "ch_1", 'payment_intent': "pi_123", 'amount': 2000, 'amount_refunded': 500,
            'currency': "usd", 'refunded': False,
        }}}

        await handle_stripe_event(event, test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("pi_123", test_session)
        assert transaction.refunded_amount == 5.0
        assert transaction.status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_full_charge_refund(self, test_session):
        await _stored_intent(test_session)
        event = {'type': "charge.refunded", 'data': {'object': {
            'id': "ch_1", 'payment_intent': "pi_123", 'amount': 2000, 'amount_refunded': 2000,
            'currency': "usd", 'refunded': True,
        }}}

        await handle_stripe_event(event, test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("pi_123", test_session)
        assert transaction.status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_unhandled_type_acknowledged(self, test_session):
        event = {'type': "customer.created", 'data': {'object': {'id': "cus_1"}}}

        assert await handle_stripe_event(event, test_session) is False

    @pytest.mark.asyncio
    async def test_unknown_intent(self, test_session):
        event = {'type': "payment_intent.canceled", 'data': {'object': {'id': "pi_missing", 'status': "canceled"}}}

        assert await handle_stripe_event(event, test_session) is False
