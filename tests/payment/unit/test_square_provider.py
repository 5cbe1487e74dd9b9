"""
Unit tests for SquarePaymentProvider with the HTTP layer patched out.
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch

from enums.payment_status import PaymentStatus
from models.payment import PaymentAmount, PaymentOptions, PaymentInfo, PaymentCharge
from payment.square import SquarePaymentProvider, SquareApiError, attempt_idempotency_key, map_square_status


def _square_payment(status: str = "COMPLETED", amount: int = 1999, refunded: int | None = None) -> dict:
    payment = {
        'id': "sq_pay_1",
        'status': status,
        'total_money': {'amount': amount, 'currency': "USD"},
        'receipt_url': "https://squareup.com/receipt/preview/sq_pay_1",
        'card_details': {'card': {'card_brand': "VISA", 'last_4': "1111"}},
    }
    if refunded is not None:
        payment['refunded_money'] = {'amount': refunded, 'currency': "USD"}
    return {'payment': payment}


@pytest_asyncio.fixture
async def provider():
    square = SquarePaymentProvider()
    initialized = await square.initialize({
        'access_token': "EAAA-test",
        'application_id': "sandbox-sq0idb-app",
        'location_id': "L123",
        'environment': "sandbox",
    })
    assert initialized
    return square


class TestStatusMapping:

    @pytest.mark.parametrize("square_status,expected", [
        ("COMPLETED", PaymentStatus.COMPLETED),
        ("APPROVED", PaymentStatus.PROCESSING),
        ("PENDING", PaymentStatus.PENDING),
        ("CANCELED", PaymentStatus.CANCELLED),
        ("FAILED", PaymentStatus.FAILED),
    ])
    def test_map_square_status(self, square_status, expected):
        assert map_square_status(square_status) == expected


class TestInitialize:

    @pytest.mark.asyncio
    async def test_incomplete_configuration(self):
        assert await SquarePaymentProvider().initialize({'access_token': "EAAA-test"}) is False

    @pytest.mark.asyncio
    async def test_unknown_environment(self):
        result = await SquarePaymentProvider().initialize({
            'access_token': "EAAA-test", 'application_id': "app", 'location_id': "L1", 'environment': "staging",
        })

        assert result is False


class TestSquarePaymentProvider:

    @pytest.mark.asyncio
    async def test_create_reserves_local_intent(self, provider):
        with patch.object(provider, "_request", AsyncMock()) as request:
            result = await provider.create_payment(PaymentAmount(subtotal=19.99, total=19.99))

        assert result.success
        assert result.payment_intent_id.startswith("sq_intent_")
        request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_sends_amount_in_cents(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=19.99, total=19.99),
                                               PaymentOptions(order_reference="ORD-9"))
        request = AsyncMock(return_value=_square_payment())

        with patch.object(provider, "_request", request):
            result = await provider.process_payment(intent.payment_intent_id,
                                                    PaymentInfo(payment_method_id="cnon:card-nonce-ok"))

        method, path, payload = request.call_args.args
        assert (method, path) == ("POST", "/v2/payments")
        assert payload['amount_money'] == {'amount': 1999, 'currency': "USD"}
        assert payload['idempotency_key'] == attempt_idempotency_key(intent.payment_intent_id, "cnon:card-nonce-ok")
        assert payload['source_id'] == "cnon:card-nonce-ok"
        assert payload['location_id'] == "L123"
        assert payload['reference_id'] == "ORD-9"
        assert result.success
        assert result.payment_id == "sq_pay_1"
        assert result.provider_data['last4'] == "1111"

    @pytest.mark.asyncio
    async def test_process_without_token(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=5, total=5))

        result = await provider.process_payment(intent.payment_intent_id, PaymentInfo())

        assert result.success is False
        assert result.error_code == "INVALID_CARD"

    @pytest.mark.asyncio
    async def test_process_uses_stored_charge_for_foreign_intent(self, provider):
        request = AsyncMock(return_value=_square_payment(amount=500))
        charge = PaymentCharge(amount=5.0, currency="usd", order_reference="ORD-3")

        with patch.object(provider, "_request", request):
            result = await provider.process_payment("sq_intent_from_other_worker",
                                                    PaymentInfo(payment_method_id="cnon:ok"), charge)

        payload = request.call_args.args[2]
        assert result.success
        assert payload['amount_money'] == {'amount': 500, 'currency': "USD"}
        assert payload['reference_id'] == "ORD-3"

    @pytest.mark.asyncio
    async def test_client_amount_never_charged(self, provider):
        request = AsyncMock(return_value=_square_payment(amount=1))
        info = PaymentInfo(payment_method_id="cnon:card", provider_data={'amount': 0.01, 'currency': "USD"})

        with patch.object(provider, "_request", request):
            result = await provider.process_payment("made_up_intent", info)

        assert result.success is False
        assert result.status == PaymentStatus.FAILED
        request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_charge_overrides_client_amount(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=40, total=40))
        request = AsyncMock(return_value=_square_payment(amount=4000))
        info = PaymentInfo(payment_method_id="cnon:card", provider_data={'amount': 0.01})

        with patch.object(provider, "_request", request):
            await provider.process_payment(intent.payment_intent_id, info, PaymentCharge(amount=40, currency="USD"))

        assert request.call_args.args[2]['amount_money'] == {'amount': 4000, 'currency': "USD"}

    @pytest.mark.asyncio
    async def test_retry_after_decline_uses_new_idempotency_key(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=15, total=15))
        request = AsyncMock(side_effect=[
            SquareApiError(402, "CARD_DECLINED", "Card declined."),
            _square_payment(amount=1500),
        ])

        with patch.object(provider, "_request", request):
            declined = await provider.process_payment(intent.payment_intent_id,
                                                      PaymentInfo(payment_method_id="cnon:first-card"))
            retried = await provider.process_payment(intent.payment_intent_id,
                                                     PaymentInfo(payment_method_id="cnon:second-card"))

        first_key = request.call_args_list[0].args[2]['idempotency_key']
        second_key = request.call_args_list[1].args[2]['idempotency_key']
        assert declined.success is False
        assert retried.success
        assert first_key != second_key
        assert len(second_key) <= 45

    def test_same_card_replays_same_key(self):
        assert attempt_idempotency_key("sq_intent_1", "cnon:a") == attempt_idempotency_key("sq_intent_1", "cnon:a")

    @pytest.mark.asyncio
    async def test_process_api_error(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=5, total=5))
        request = AsyncMock(side_effect=SquareApiError(402, "CARD_DECLINED", "Card declined."))

        with patch.object(provider, "_request", request):
            result = await provider.process_payment(intent.payment_intent_id, PaymentInfo(payment_method_id="cnon:x"))

        assert result.success is False
        assert result.error_code == "CARD_DECLINED"
        assert result.error == "Card declined."

    @pytest.mark.asyncio
    async def test_verify_fully_refunded(self, provider):
        request = AsyncMock(return_value=_square_payment(amount=1999, refunded=1999))

        with patch.object(provider, "_request", request):
            result = await provider.verify_payment("sq_pay_1")

        assert result.status == PaymentStatus.REFUNDED
        assert result.provider_data['amount'] == 19.99

    @pytest.mark.asyncio
    async def test_cancel_unsubmitted_intent_is_local(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=5, total=5))

        with patch.object(provider, "_request", AsyncMock()) as request:
            result = await provider.cancel_payment(intent.payment_intent_id)

        assert result.success
        request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_refund(self, provider):
        request = AsyncMock(side_effect=[
            _square_payment(amount=2000, refunded=500),
            {'refund': {'id': "sq_refund_1"}},
        ])

        with patch.object(provider, "_request", request):
            result = await provider.refund_payment("sq_pay_1", 10.0)

        assert result.success
        assert result.refund_id == "sq_refund_1"
        assert result.amount == 10.0
        method, path, payload = request.call_args_list[1].args
        assert (method, path) == ("POST", "/v2/refunds")
        assert payload['amount_money'] == {'amount': 1000, 'currency': "USD"}

    @pytest.mark.asyncio
    async def test_refund_above_remaining_rejected(self, provider):
        request = AsyncMock(return_value=_square_payment(amount=2000, refunded=1500))

        with patch.object(provider, "_request", request):
            result = await provider.refund_payment("sq_pay_1", 10.0)

        assert result.success is False
        assert request.await_count == 1

    @pytest.mark.asyncio
    async def test_client_config(self, provider):
        assert provider.get_client_config() == {
            'applicationId': "sandbox-sq0idb-app",
            'locationId': "L123",
            'environment': "sandbox",
        }
