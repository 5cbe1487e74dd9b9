"""
Unit tests for the in-memory MockPaymentProvider.
"""

import pytest

from enums.payment_status import PaymentStatus
from models.payment import PaymentAmount, PaymentInfo
from payment.mock import MockPaymentProvider, DECLINED_PAYMENT_METHOD


@pytest.fixture
def provider():
    return MockPaymentProvider()


async def _paid(provider: MockPaymentProvider, total: float = 30.0):
    intent = await provider.create_payment(PaymentAmount(subtotal=total, total=total))
    return await provider.process_payment(intent.payment_intent_id, PaymentInfo(payment_method_id="pm_card_visa"))


class TestMockPaymentProvider:

    @pytest.mark.asyncio
    async def test_create_returns_intent_and_secret(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=10, total=10))

        assert intent.success
        assert intent.payment_intent_id.startswith("mock_intent_")
        assert intent.client_secret.endswith("_secret")

    @pytest.mark.asyncio
    async def test_successful_payment(self, provider):
        result = await _paid(provider)

        assert result.success
        assert result.status == PaymentStatus.COMPLETED
        assert result.payment_id.startswith("mock_payment_")

    @pytest.mark.asyncio
    async def test_declined_payment_method(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=10, total=10))

        result = await provider.process_payment(intent.payment_intent_id,
                                                PaymentInfo(payment_method_id=DECLINED_PAYMENT_METHOD))

        assert result.success is False
        assert result.status == PaymentStatus.FAILED
        assert result.error_code == "card_declined"

    @pytest.mark.asyncio
    async def test_second_process_returns_original_payment(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=10, total=10))
        first = await provider.process_payment(intent.payment_intent_id, PaymentInfo(payment_method_id="pm_card_visa"))

        second = await provider.process_payment(intent.payment_intent_id,
                                                PaymentInfo(payment_method_id="pm_card_other"))

        assert second.success
        assert second.payment_id == first.payment_id
        assert second.payment_method_id == "pm_card_visa"
        assert len(provider._payments) == 1

    @pytest.mark.asyncio
    async def test_cancelled_intent_cannot_be_processed(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=10, total=10))
        await provider.cancel_payment(intent.payment_intent_id)

        result = await provider.process_payment(intent.payment_intent_id,
                                                PaymentInfo(payment_method_id="pm_card_visa"))

        assert result.success is False
        assert result.status == PaymentStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_unknown_intent(self, provider):
        result = await provider.process_payment("mock_intent_missing", PaymentInfo())

        assert result.success is False
        assert result.error_code == "not_found"

    @pytest.mark.asyncio
    async def test_verify_by_payment_id(self, provider):
        paid = await _paid(provider, 12.0)

        result = await provider.verify_payment(paid.payment_id)

        assert result.status == PaymentStatus.COMPLETED
        assert result.provider_data['amount'] == 12.0

    @pytest.mark.asyncio
    async def test_completed_payment_cannot_be_cancelled(self, provider):
        paid = await _paid(provider)

        result = await provider.cancel_payment(paid.payment_id)

        assert result.success is False
        assert "refund" in result.error

    @pytest.mark.asyncio
    async def test_refund_bounded_by_remaining_amount(self, provider):
        paid = await _paid(provider, 30.0)

        first = await provider.refund_payment(paid.payment_id, 20.0)
        too_much = await provider.refund_payment(paid.payment_id, 20.0)
        rest = await provider.refund_payment(paid.payment_id)

        assert first.success and first.amount == 20.0
        assert too_much.success is False
        assert rest.success and rest.amount == 10.0
        assert (await provider.verify_payment(paid.payment_id)).status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_pending_payment_cannot_be_refunded(self, provider):
        intent = await provider.create_payment(PaymentAmount(subtotal=10, total=10))

        result = await provider.refund_payment(intent.payment_intent_id)

        assert result.success is False

    def test_client_config(self, provider):
        assert provider.get_client_config() == {'isMock': True}
