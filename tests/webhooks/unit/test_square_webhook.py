"""
Unit tests for Square webhook verification and event handling.
"""

import base64
import hashlib
import hmac

import pytest

from enums.payment_status import PaymentStatus
from models.payment_transaction import PaymentTransactionDTO
from processing.webhooks import verify_square_signature, handle_square_event
from repositories.payment_transaction import PaymentTransactionRepository

KEY = "square-signature-key"
URL = "https://shop.example.com/api/webhooks/square"


def _sign(body: bytes, key: str = KEY, url: str = URL) -> str:
    return base64.b64encode(hmac.new(key.encode(), url.encode() + body, hashlib.sha256).digest()).decode()


def _event(status: str, total: int = 2500, refunded: int | None = None, event_type: str = "payment.updated"):
    payment = {'id': "sq_pay_1", 'status': status, 'total_money': {'amount': total, 'currency': "USD"}}
    if refunded is not None:
        payment['refunded_money'] = {'amount': refunded, 'currency': "USD"}
    return {'type': event_type, 'data': {'object': {'payment': payment}}}


async def _stored_transaction(session):
    return await PaymentTransactionRepository.create(PaymentTransactionDTO(
        provider="square", payment_intent_id="sq_intent_1", payment_id="sq_pay_1",
        amount=25.0, currency="USD", status=PaymentStatus.PROCESSING,
    ), session)


class TestVerifySquareSignature:

    def test_valid_signature(self):
        body = b'{"type":"payment.updated"}'

        assert verify_square_signature(body, _sign(body), KEY, URL)

    def test_tampered_body(self):
        signature = _sign(b'{"type":"payment.updated"}')

        assert not verify_square_signature(b'{"type":"payment.created"}', signature, KEY, URL)

    def test_url_is_part_of_signature(self):
        body = b"{}"

        assert not verify_square_signature(body, _sign(body, url="https://other.example.com/hook"), KEY, URL)

    def test_missing_header(self):
        assert not verify_square_signature(b"{}", None, KEY, URL)


class TestHandleSquareEvent:

    @pytest.mark.asyncio
    async def test_completed_payment(self, test_session):
        await _stored_transaction(test_session)

        handled = await handle_square_event(_event("COMPLETED"), test_session)

        assert handled
        transaction = await PaymentTransactionRepository.get_by_reference("sq_pay_1", test_session)
        assert transaction.status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_partial_refund_keeps_completed(self, test_session):
        await _stored_transaction(test_session)

        await handle_square_event(_event("COMPLETED", refunded=1000), test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("sq_pay_1", test_session)
        assert transaction.status == PaymentStatus.COMPLETED
        assert transaction.refunded_amount == 10.0

    @pytest.mark.asyncio
    async def test_full_refund(self, test_session):
        await _stored_transaction(test_session)

        await handle_square_event(_event("COMPLETED", refunded=2500), test_session)

        transaction = await PaymentTransactionRepository.get_by_reference("sq_pay_1", test_session)
        assert transaction.status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_other_event_types_ignored(self, test_session):
        assert await handle_square_event({'type': "refund.created", 'data': {}}, test_session) is False

    @pytest.mark.asyncio
    async def test_unknown_payment(self, test_session):
        assert await handle_square_event(_event("COMPLETED"), test_session) is False
