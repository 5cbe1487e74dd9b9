"""
API tests: provider webhooks with real signatures.
"""

import base64
import hashlib
import hmac
import json
import time

import pytest

import config


def _stripe_headers(payload: bytes) -> dict:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(config.STRIPE_WEBHOOK_SECRET.encode(), signed, hashlib.sha256)
    return {'Stripe-Signature': f"t={timestamp},v1={digest.hexdigest()}", 'Content-Type': "application/json"}


def _square_headers(payload: bytes) -> dict:
    signed = config.SQUARE_WEBHOOK_URL.encode() + payload
    digest = hmac.new(config.SQUARE_WEBHOOK_SIGNATURE_KEY.encode(), signed, hashlib.sha256)
    return {'X-Square-HmacSha256-Signature': base64.b64encode(digest.digest()).decode(),
            'Content-Type': "application/json"}


async def _pending_intent(api_client) -> str:
    response = await api_client.post("/api/payment/create-intent", json={'amount': {'subtotal': 20, 'total': 20}})
    return response.json()['paymentIntentId']


BUYER = {'X-User-Id': "buyer-1"}

CHECKOUT = {
    'email': "ada@example.com",
    'shippingAddress': {'firstName': "Ada", 'lastName': "Lovelace", 'phone': "555-0100",
                        'address1': "1 Main St", 'city': "Springfield", 'state': "IL",
                        'postalCode': "62701", 'country': "US"},
}


async def _checked_out_order(api_client, admin_headers) -> tuple[dict, str]:
    product = await api_client.post("/api/admin/products",
                                    json={'name': "Lamp", 'sku': "LAMP-1", 'retailPrice': 30, 'stock': 2},
                                    headers=admin_headers)
    await api_client.post("/api/cart", json={'action': "add", 'productId': product.json()['id']}, headers=BUYER)
    body = (await api_client.post("/api/checkout", json=CHECKOUT, headers=BUYER)).json()
    return body['order'], body['payment']['paymentIntentId']


class TestStripeWebhook:

    @pytest.mark.asyncio
    async def test_succeeded_event_completes_transaction(self, api_client):
        intent_id = await _pending_intent(api_client)
        payload = json.dumps({
            'id': "evt_1",
            'type': "payment_intent.succeeded",
            'data': {'object': {'id': intent_id, 'status': "succeeded"}},
        }).encode()

        response = await api_client.post("/api/webhooks/stripe", content=payload, headers=_stripe_headers(payload))
        receipt = await api_client.get(f"/api/payment/receipt/{intent_id}")

        assert response.status_code == 200
        assert response.json() == {'received': True, 'handled': True}
        assert receipt.json()['status'] == "completed"

    @pytest.mark.asyncio
    async def test_bad_signature(self, api_client):
        payload = b'{"id": "evt_1", "type": "payment_intent.succeeded"}'
        headers = {'Stripe-Signature': f"t={int(time.time())},v1={'0' * 64}"}

        response = await api_client.post("/api/webhooks/stripe", content=payload, headers=headers)

        assert response.status_code == 403
        assert response.json()['error']['code'] == "WebhookSignatureException"

    @pytest.mark.asyncio
    async def test_missing_signature(self, api_client):
        response = await api_client.post("/api/webhooks/stripe", content=b"{}")

        assert response.status_code == 403


class TestWebhookUpdatesOrder:

    @pytest.mark.asyncio
    async def test_succeeded_event_pays_order(self, api_client, admin_headers):
        order, intent_id = await _checked_out_order(api_client, admin_headers)
        payload = json.dumps({
            'id': "evt_2",
            'type': "payment_intent.succeeded",
            'data': {'object': {'id': intent_id, 'status': "succeeded"}},
        }).encode()

        await api_client.post("/api/webhooks/stripe", content=payload, headers=_stripe_headers(payload))
        updated = await api_client.get(f"/api/orders/{order['orderNumber']}", headers=BUYER)

        assert updated.json()['status'] == "paid"
        assert updated.json()['paymentStatus'] == "paid"

    @pytest.mark.asyncio
    async def test_failed_event_fails_order(self, api_client, admin_headers):
        order, intent_id = await _checked_out_order(api_client, admin_headers)
        payload = json.dumps({
            'id': "evt_3",
            'type': "payment_intent.payment_failed",
            'data': {'object': {'id': intent_id, 'last_payment_error': {'message': "Card declined"}}},
        }).encode()

        await api_client.post("/api/webhooks/stripe", content=payload, headers=_stripe_headers(payload))
        updated = await api_client.get(f"/api/orders/{order['orderNumber']}", headers=BUYER)
        detail = await api_client.get(f"/api/admin/orders/{order['id']}", headers=admin_headers)

        assert updated.json()['status'] == "failed"
        assert detail.json()['history'][-1]['note'] == "Stripe payment_intent.payment_failed"


class TestSquareWebhook:

    @pytest.mark.asyncio
    async def test_signed_event_acknowledged(self, api_client):
        payload = json.dumps({
            'type': "payment.updated",
            'data': {'object': {'payment': {'id': "sq_pay_unknown", 'status': "COMPLETED"}}},
        }).encode()

        response = await api_client.post("/api/webhooks/square", content=payload, headers=_square_headers(payload))

        assert response.status_code == 200
        assert response.json() == {'received': True, 'handled': False}

    @pytest.mark.asyncio
    async def test_bad_signature(self, api_client):
        payload = b'{"type": "payment.updated"}'
        headers = {'X-Square-HmacSha256-Signature': base64.b64encode(b"forged").decode()}

        response = await api_client.post("/api/webhooks/square", content=payload, headers=headers)

        assert response.status_code == 403
