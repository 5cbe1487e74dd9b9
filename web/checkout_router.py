"""
Checkout: cart -> pending order -> payment intent for the order total.

The client then completes the payment with POST /api/payment/process; the
order follows the payment through PaymentService and the provider webhooks.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from enums.order_status import ShippingMethod
from models.order import CheckoutDTO
from models.payment import PaymentAmount, PaymentOptions
from payment.service import PaymentService
from services.cart import CartService
from services.order import OrderService
from web.dependencies import get_session, get_payment_service, get_cart_owner, CartOwner
from web.payment_router import payment_failure

logger = logging.getLogger(__name__)

checkout_router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@checkout_router.get("/shipping-options")
async def shipping_options():
    return {'shippingOptions': [
        {'method': method.value, 'name': method.display_name, 'price': method.price}
        for method in ShippingMethod
    ]}


@checkout_router.post("", status_code=status.HTTP_201_CREATED)
async def checkout(payload: CheckoutDTO,
                   owner: CartOwner = Depends(get_cart_owner),
                   payment_service: PaymentService = Depends(get_payment_service),
                   session: AsyncSession = Depends(get_session)):
    cart = await CartService.get_or_create_cart(session, user_id=owner.user_id, anonymous_id=owner.anonymous_id)
    order = await OrderService.create_order_from_cart(session, cart.id, payload, user_id=owner.user_id,
                                                      anonymous_id=owner.anonymous_id)

    intent = await payment_service.create_payment(
        PaymentAmount(subtotal=order.subtotal, shipping=order.shipping_cost, tax=order.tax, total=order.total,
                      currency=order.currency),
        PaymentOptions(order_reference=order.order_number, client_email=order.email,
                       description=f"Order {order.order_number}"),
        provider_id=payload.provider,
        session=session,
    )
    if not intent.success:
        # The order stays pending; the customer can retry payment for it
        logger.warning(f"[Checkout] Payment intent for {order.order_number} failed: {intent.error}")
        return payment_failure(intent.provider, intent.error, intent.error_code)

    order = await OrderService.attach_payment(session, order.id, intent.payment_intent_id, intent.provider)
    return {'order': order.to_client(), 'payment': intent.to_client()}
