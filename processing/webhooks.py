import base64
import hashlib
import hmac
import json
import logging

import stripe
from fastapi import APIRouter, Request, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from enums.currency import Currency
from enums.payment_status import PaymentStatus
from exceptions.webhook import WebhookSignatureException
from payment.square import map_square_status
from payment.stripe_provider import map_stripe_status
from repositories.payment_transaction import PaymentTransactionRepository
from services.order import OrderService
from web.dependencies import get_session

logger = logging.getLogger(__name__)

webhooks_router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

SQUARE_SIGNATURE_HEADER = "x-square-hmacsha256-signature"
STRIPE_SIGNATURE_HEADER = "stripe-signature"


def verify_square_signature(body: bytes, signature: str | None, signature_key: str, notification_url: str) -> bool:
    """
    Validate a Square webhook: base64(HMAC-SHA256(key, notification_url + body)).

    A missing header counts as a failed check.
    """
    if not signature:
        return False
    digest = hmac.new(signature_key.encode("utf-8"), notification_url.encode("utf-8") + body, hashlib.sha256)
    expected = base64.b64encode(digest.digest()).decode("utf-8")
    return hmac.compare_digest(expected, signature)


def construct_stripe_event(body: bytes, signature: str | None, webhook_secret: str) -> dict:
    """
    Raises:
        WebhookSignatureException: missing/invalid signature or malformed payload
    """
    if not signature:
        raise WebhookSignatureException("stripe", "missing signature header")
    try:
        stripe.Webhook.construct_event(payload=body, sig_header=signature, secret=webhook_secret)
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureException("stripe", "signature mismatch") from e
    except ValueError as e:
        raise WebhookSignatureException("stripe", "malformed payload") from e
    # Signature verified; hand on the raw JSON as plain dicts
    return json.loads(body)


def _minor_to_major(amount: int | None, currency: str | None) -> float:
    if not amount:
        return 0.0
    try:
        factor = Currency((currency or "USD").upper()).minor_unit_factor
    except ValueError:
        factor = 100
    return amount / factor


async def handle_square_event(event: dict, session: AsyncSession) -> bool:
    """
    Apply payment.created / payment.updated to the stored transaction and its order.

    Returns:
        True when a transaction was updated
    """
    event_type = event.get('type')
    if event_type not in ("payment.created", "payment.updated"):
        logger.info(f"[Webhook] Square event '{event_type}' acknowledged without action")
        return False

    square_payment = event.get('data', {}).get('object', {}).get('payment', {})
    payment_id = square_payment.get('id')
    if not payment_id:
        logger.warning(f"[Webhook] Square {event_type} without payment id")
        return False

    status = map_square_status(square_payment.get('status'))
    refunded_money = square_payment.get('refunded_money') or {}
    refunded = _minor_to_major(refunded_money.get('amount'), refunded_money.get('currency'))
    total_money = square_payment.get('total_money') or {}
    total = _minor_to_major(total_money.get('amount'), total_money.get('currency'))
    if refunded and total and refunded >= total:
        status = PaymentStatus.REFUNDED

    updated = await PaymentTransactionRepository.update_status(
        payment_id, status, session, refunded_amount=refunded or None)
    if updated is None:
        logger.warning(f"[Webhook] Square payment {payment_id} has no local transaction")
        return False
    await session_commit(session)
    await OrderService.sync_from_transaction(session, updated, note=f"Square {event_type}")
    logger.info(f"[Webhook] Square payment {payment_id} -> {status.value}")
    return True


async def handle_stripe_event(event: dict, session: AsyncSession) -> bool:
    """
    Apply a verified Stripe event to the stored transaction and its order.

    Handles payment_intent.succeeded, payment_intent.payment_failed,
    payment_intent.canceled and charge.refunded; anything else is only
    acknowledged.

    Returns:
        True when a transaction was updated
    """
    event_type = event['type']
    data_object = event['data']['object']

    match event_type:
        case "payment_intent.succeeded" | "payment_intent.canceled":
            intent_id = data_object['id']
            updated = await PaymentTransactionRepository.update_status(
                intent_id, map_stripe_status(data_object.get('status')), session, payment_id=intent_id)
        case "payment_intent.payment_failed":
            intent_id = data_object['id']
            last_error = data_object.get('last_payment_error') or {}
            updated = await PaymentTransactionRepository.update_status(
                intent_id, PaymentStatus.FAILED, session, error=last_error.get('message', "Payment failed"))
        case "charge.refunded":
            intent_id = data_object.get('payment_intent')
            if not intent_id:
                logger.warning(f"[Webhook] Stripe charge {data_object.get('id')} refunded without payment intent")
                return False
            refunded = _minor_to_major(data_object.get('amount_refunded'), data_object.get('currency'))
            fully_refunded = data_object.get('refunded') or \
                data_object.get('amount_refunded', 0) >= data_object.get('amount', 0)
            status = PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.COMPLETED
            updated = await PaymentTransactionRepository.update_status(
                intent_id, status, session, refunded_amount=refunded)
        case _:
            logger.info(f"[Webhook] Stripe event '{event_type}' acknowledged without action")
            return False

    if updated is None:
        logger.warning(f"[Webhook] Stripe {event_type} for {intent_id} has no local transaction")
        return False
    await session_commit(session)
    await OrderService.sync_from_transaction(session, updated, note=f"Stripe {event_type}")
    logger.info(f"[Webhook] Stripe {event_type} applied to {intent_id} ({updated.status.value})")
    return True


@webhooks_router.post("/square")
async def square_webhook(request: Request, session: AsyncSession = Depends(get_session)):
    if not config.SQUARE_WEBHOOK_SIGNATURE_KEY:
        logger.error("[Webhook] Square webhook received but SQUARE_WEBHOOK_SIGNATURE_KEY is not set")
        raise HTTPException(status_code=503, detail="Square webhooks are not configured")

    body = await request.body()
    signature = request.headers.get(SQUARE_SIGNATURE_HEADER)
    if not verify_square_signature(body, signature, config.SQUARE_WEBHOOK_SIGNATURE_KEY, config.SQUARE_WEBHOOK_URL):
        logger.error("[Webhook] Square signature check failed")
        raise HTTPException(status_code=403, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    handled = await handle_square_event(event, session)
    return {'received': True, 'handled': handled}


@webhooks_router.post("/stripe")
async def stripe_webhook(request: Request, session: AsyncSession = Depends(get_session)):
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("[Webhook] Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise HTTPException(status_code=503, detail="Stripe webhooks are not configured")

    body = await request.body()
    # Raises WebhookSignatureException, answered with 403 by the app handler
    event = construct_stripe_event(body, request.headers.get(STRIPE_SIGNATURE_HEADER),
                                   config.STRIPE_WEBHOOK_SECRET)

    handled = await handle_stripe_event(event, session)
    return {'received': True, 'handled': handled}
