"""
Payment lifecycle API.

Adapters answer with result objects; a failed result is turned into the
PaymentError body ({"error": {code, message, userMessage, ...}}) with the
matching HTTP status.
"""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

import config
from exceptions.payment import (
    create_payment_error_from_provider,
    PaymentValidationError,
    PaymentTransactionNotFoundException
)
from models.base import CamelModel
from models.order import OrderDTO
from models.payment import PaymentAmount, PaymentOptions, PaymentInfo
from models.payment_transaction import PaymentTransactionDTO
from payment.config import get_client_payment_config
from payment.receipt import ReceiptGenerator
from payment.service import PaymentService
from services.cart import CartService
from services.order import OrderService, is_order_owner
from web.dependencies import get_session, get_payment_service, get_cart_owner, require_admin, CartOwner

logger = logging.getLogger(__name__)

payment_router = APIRouter(prefix="/api/payment", tags=["payment"])


class CreateIntentPayload(CamelModel):
    amount: PaymentAmount | None = None
    use_cart: bool = False
    options: PaymentOptions | None = None
    provider: str | None = None

    @model_validator(mode="after")
    def amount_source(self):
        if self.amount is None and not self.use_cart:
            raise ValueError("Either amount or useCart is required")
        return self


class ProcessPaymentPayload(CamelModel):
    payment_intent_id: str = Field(..., min_length=1, max_length=255)
    payment_info: PaymentInfo = Field(default_factory=PaymentInfo)
    provider: str | None = None


class PaymentReferencePayload(CamelModel):
    payment_id: str = Field(..., min_length=1, max_length=255)
    provider: str | None = None


class RefundPayload(PaymentReferencePayload):
    amount: float | None = Field(default=None, gt=0)


def payment_failure(provider: str | None, error: str | None, error_code: str | None) -> JSONResponse:
    payment_error = create_payment_error_from_provider(provider or "unknown", error_code or "",
                                                       error or "Payment failed")
    logger.warning(f"[Payment] {provider} failure {payment_error.code} ({error_code}): {error}")
    return JSONResponse(status_code=payment_error.status_code, content=payment_error.to_dict())


async def order_for_caller(transaction: PaymentTransactionDTO, owner: CartOwner,
                          session: AsyncSession) -> OrderDTO | None:
    """
    The order a payment belongs to, when the caller owns it.

    Payments of someone else's order are reported as not found. Payments
    with no order stay reachable by id alone.
    """
    order = await OrderService.find_for_transaction(session, transaction)
    if order is not None and not is_order_owner(order, owner.user_id, owner.anonymous_id):
        logger.warning(f"[Payment] Refused access to payment of order {order.order_number}")
        raise PaymentTransactionNotFoundException(transaction.payment_id or transaction.payment_intent_id)
    return order


@payment_router.post("/create-intent")
async def create_intent(payload: CreateIntentPayload,
                        owner: CartOwner = Depends(get_cart_owner),
                        payment_service: PaymentService = Depends(get_payment_service),
                        session: AsyncSession = Depends(get_session)):
    amount = payload.amount
    if payload.use_cart:
        # Charge what the server-side cart says, never a client total
        cart = await CartService.get_or_create_cart(session, user_id=owner.user_id,
                                                    anonymous_id=owner.anonymous_id)
        summary = await CartService.get_cart(session, cart.id)
        if summary.subtotal <= 0:
            raise PaymentValidationError("Cart is empty", {'cart': "Add products before checking out"})
        amount = PaymentAmount(subtotal=summary.subtotal, total=summary.subtotal, currency=config.CURRENCY.value)

    result = await payment_service.create_payment(amount, payload.options, provider_id=payload.provider,
                                                  session=session)
    if not result.success:
        return payment_failure(result.provider, result.error, result.error_code)
    return result.to_client()


@payment_router.post("/process")
async def process_payment(payload: ProcessPaymentPayload,
                          payment_service: PaymentService = Depends(get_payment_service),
                          session: AsyncSession = Depends(get_session)):
    result = await payment_service.process_payment(payload.payment_intent_id, payload.payment_info,
                                                   provider_id=payload.provider, session=session)
    if not result.success:
        return payment_failure(payload.provider or payload.payment_info.provider, result.error, result.error_code)
    return result.to_client()


@payment_router.post("/verify")
async def verify_payment(payload: PaymentReferencePayload,
                         payment_service: PaymentService = Depends(get_payment_service),
                         session: AsyncSession = Depends(get_session)):
    result = await payment_service.verify_payment(payload.payment_id, provider_id=payload.provider,
                                                  session=session)
    if not result.success and result.error:
        return payment_failure(payload.provider, result.error, result.error_code)
    return result.to_client()


@payment_router.post("/cancel")
async def cancel_payment(payload: PaymentReferencePayload,
                         owner: CartOwner = Depends(get_cart_owner),
                         payment_service: PaymentService = Depends(get_payment_service),
                         session: AsyncSession = Depends(get_session)):
    transaction = await payment_service.find_transaction(payload.payment_id, session)
    if transaction is not None:
        await order_for_caller(transaction, owner, session)
    result = await payment_service.cancel_payment(payload.payment_id, provider_id=payload.provider,
                                                  session=session)
    if not result.success:
        return payment_failure(payload.provider, result.error, result.error_code)
    return result.to_client()


@payment_router.post("/refund", dependencies=[Depends(require_admin)])
async def refund_payment(payload: RefundPayload,
                         payment_service: PaymentService = Depends(get_payment_service),
                         session: AsyncSession = Depends(get_session)):
    result = await payment_service.refund_payment(payload.payment_id, payload.amount,
                                                  provider_id=payload.provider, session=session)
    if not result.success:
        return payment_failure(payload.provider, result.error, result.error_code)
    return result.to_client()


@payment_router.get("/receipt/{payment_id}")
async def payment_receipt(payment_id: str,
                          format: str = Query(default="json", pattern="^(json|text)$"),
                          owner: CartOwner = Depends(get_cart_owner),
                          payment_service: PaymentService = Depends(get_payment_service),
                          session: AsyncSession = Depends(get_session)):
    transaction = await payment_service.get_transaction(payment_id, session)
    order = await order_for_caller(transaction, owner, session)
    receipt = ReceiptGenerator.generate_receipt_data(transaction, order=order)
    if format == "text":
        return PlainTextResponse(ReceiptGenerator.format_receipt_text(receipt))
    return receipt.to_client()


@payment_router.get("/config")
async def payment_config(provider: str | None = Query(default=None),
                         payment_service: PaymentService = Depends(get_payment_service)):
    if provider:
        return payment_service.get_client_config(provider)
    return {
        **get_client_payment_config(),
        'activeProvider': payment_service.active_provider_id,
    }


@payment_router.get("/providers")
async def payment_providers(payment_service: PaymentService = Depends(get_payment_service)):
    return {
        'providers': payment_service.get_available_providers(),
        'defaultProvider': payment_service.default_provider_id,
        'activeProvider': payment_service.active_provider_id,
    }
