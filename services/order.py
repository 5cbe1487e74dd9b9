import logging
import secrets
import string
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from enums.order_status import OrderStatus, OrderPaymentStatus, ShippingMethod
from enums.payment_status import PaymentStatus
from exceptions.order import OrderNotFoundException, EmptyCartCheckoutException
from models.order import (
    CheckoutDTO,
    OrderDTO,
    OrderItemDTO,
    OrderFilters,
    OrderPage,
    OrderStatusHistoryDTO
)
from models.payment_transaction import PaymentTransactionDTO
from repositories.order import OrderRepository
from services.cart import CartService
from utils.order_validator import (
    PAYMENT_RESULT_STATUSES,
    can_transition_order,
    can_transition_payment,
    validate_order_transition,
    validate_payment_transition,
    validate_order_totals
)

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_ATTEMPTS = 5


def generate_order_number(now: datetime | None = None) -> str:
    """NO-YYYYMMDD-XXXX with four random upper-case letters or digits."""
    suffix = ''.join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(4))
    return f"NO-{(now or datetime.now()):%Y%m%d}-{suffix}"


def calculate_totals(subtotal: float, shipping_method: ShippingMethod) -> tuple[float, float, float]:
    """
    Returns:
        (shipping cost, tax, total); tax is charged on subtotal + shipping
    """
    shipping_cost = shipping_method.price
    tax = round((subtotal + shipping_cost) * config.TAX_RATE, 2)
    return shipping_cost, tax, round(subtotal + shipping_cost + tax, 2)


def is_order_owner(order: OrderDTO, user_id: str | None, anonymous_id: str | None) -> bool:
    if order.user_id is not None:
        return order.user_id == user_id
    return order.anonymous_id is not None and order.anonymous_id == anonymous_id


class OrderService:

    @staticmethod
    async def _new_order_number(session: AsyncSession) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            order_number = generate_order_number()
            if not await OrderRepository.number_exists(order_number, session):
                return order_number
        raise RuntimeError(f"Could not allocate a unique order number in {ORDER_NUMBER_ATTEMPTS} attempts")

    @staticmethod
    async def create_order_from_cart(session: AsyncSession, cart_id: int, checkout: CheckoutDTO,
                                     user_id: str | None = None, anonymous_id: str | None = None) -> OrderDTO:
        """
        Turn the cart into a pending order.

        Lines, unit prices and product names are copied from the cart;
        shipping comes from the chosen method and tax from TAX_RATE, so the
        client never supplies an amount. The cart is closed (CHECKED_OUT).

        Raises:
            CartNotFoundException: unknown cart
            EmptyCartCheckoutException: cart has no lines
            ProductNotFoundException / InsufficientStockException: a line is no longer available
            InvalidOrderDataException: totals do not add up
        """
        summary = await CartService.check_availability(session, cart_id)
        if not summary.items:
            raise EmptyCartCheckoutException(cart_id)

        items = [OrderItemDTO(
            product_id=item.product_id,
            variant_id=item.variant_id,
            name=item.product_name or f"Product {item.product_id}",
            sku=item.product_sku,
            quantity=item.quantity,
            unit_price=item.price,
            total_price=item.line_total,
            image_url=item.image_url,
        ) for item in summary.items]
        shipping_cost, tax, total = calculate_totals(summary.subtotal, checkout.shipping_method)
        validate_order_totals([(item.quantity, item.unit_price) for item in items],
                              summary.subtotal, shipping_cost, tax, total)

        order = await OrderRepository.create(OrderDTO(
            order_number=await OrderService._new_order_number(session),
            user_id=user_id,
            anonymous_id=None if user_id else anonymous_id,
            cart_id=cart_id,
            email=checkout.email,
            status=OrderStatus.PENDING,
            payment_status=OrderPaymentStatus.PENDING,
            payment_provider=checkout.provider,
            shipping_address=checkout.shipping_address,
            billing_address=checkout.billing_address or checkout.shipping_address,
            shipping_method=checkout.shipping_method,
            subtotal=summary.subtotal,
            shipping_cost=shipping_cost,
            tax=tax,
            total=total,
            currency=config.CURRENCY.value,
            notes=checkout.notes,
            items=items,
        ), session)
        await OrderRepository.add_history(order.id, order.status, order.payment_status,
                                          "Order created at checkout", session)
        await CartService.mark_checked_out(session, cart_id)
        await session_commit(session)
        logger.info(f"[Order] Created {order.order_number} from cart {cart_id}: "
                    f"{len(items)} lines, total {total:.2f} {order.currency}")
        return order

    @staticmethod
    async def attach_payment(session: AsyncSession, order_id: int, payment_intent_id: str,
                             provider: str | None) -> OrderDTO:
        order = await OrderRepository.update(order_id, session, payment_intent_id=payment_intent_id,
                                             payment_provider=provider)
        if order is None:
            raise OrderNotFoundException(order_id)
        await session_commit(session)
        return order

    @staticmethod
    async def get_order(session: AsyncSession, order_id: int) -> OrderDTO:
        order = await OrderRepository.get_by_id(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    @staticmethod
    async def get_order_by_number(session: AsyncSession, order_number: str, user_id: str | None = None,
                                  anonymous_id: str | None = None, check_owner: bool = True) -> OrderDTO:
        """
        Someone else's order is reported as not found, so order numbers
        cannot be used to discover other customers' orders.
        """
        order = await OrderRepository.get_by_number(order_number, session)
        if order is None or (check_owner and not is_order_owner(order, user_id, anonymous_id)):
            raise OrderNotFoundException(order_number)
        return order

    @staticmethod
    async def find_for_transaction(session: AsyncSession, transaction: PaymentTransactionDTO) -> OrderDTO | None:
        """The order paid by a transaction: by intent id first, then by order number reference."""
        order = None
        if transaction.payment_intent_id:
            order = await OrderRepository.get_by_payment_intent(transaction.payment_intent_id, session)
        if order is None and transaction.order_reference:
            order = await OrderRepository.get_by_number(transaction.order_reference, session)
        return order

    @staticmethod
    async def get_user_orders(session: AsyncSession, user_id: str | None = None, anonymous_id: str | None = None,
                              limit: int = 20, offset: int = 0) -> OrderPage:
        if not user_id and not anonymous_id:
            return OrderPage(limit=limit, offset=offset)
        filters = OrderFilters(user_id=user_id) if user_id else OrderFilters(anonymous_id=anonymous_id)
        return await OrderService.list_orders(session, filters, limit, offset)

    @staticmethod
    async def list_orders(session: AsyncSession, filters: OrderFilters, limit: int = 20,
                          offset: int = 0) -> OrderPage:
        orders = await OrderRepository.get_filtered(filters, limit, offset, session)
        total = await OrderRepository.count(filters, session)
        return OrderPage(orders=orders, total=total, limit=limit, offset=offset)

    @staticmethod
    async def get_history(session: AsyncSession, order_id: int) -> list[OrderStatusHistoryDTO]:
        await OrderService.get_order(session, order_id)
        return await OrderRepository.get_history(order_id, session)

    @staticmethod
    async def update_order_status(session: AsyncSession, order_id: int, status: OrderStatus,
                                  note: str | None = None) -> OrderDTO:
        """
        Raises:
            OrderNotFoundException: unknown order
            InvalidOrderStatusTransitionException: status not reachable from the current one
        """
        order = await OrderService.get_order(session, order_id)
        validate_order_transition(order.status, status)
        if order.status == status:
            return order
        updated = await OrderRepository.update(order_id, session, status=status)
        await OrderRepository.add_history(order_id, updated.status, updated.payment_status, note, session)
        await session_commit(session)
        logger.info(f"[Order] {order.order_number}: status {order.status.value} -> {status.value}")
        return updated

    @staticmethod
    async def update_payment_status(session: AsyncSession, order_id: int, payment_status: OrderPaymentStatus,
                                    note: str | None = None) -> OrderDTO:
        """
        Raises:
            OrderNotFoundException: unknown order
            InvalidOrderStatusTransitionException: payment status not reachable from the current one
        """
        order = await OrderService.get_order(session, order_id)
        validate_payment_transition(order.payment_status, payment_status)
        if order.payment_status == payment_status:
            return order
        updated = await OrderRepository.update(order_id, session, payment_status=payment_status)
        await OrderRepository.add_history(order_id, updated.status, updated.payment_status, note, session)
        await session_commit(session)
        logger.info(f"[Order] {order.order_number}: payment {order.payment_status.value} -> {payment_status.value}")
        return updated

    @staticmethod
    async def update_order_from_payment(session: AsyncSession, payment_status: PaymentStatus,
                                        payment_intent_id: str | None = None, order_number: str | None = None,
                                        note: str | None = None) -> OrderDTO | None:
        """
        Move an order along after a provider reported a payment status.

        Provider events can arrive late or repeated, so a status the order
        can no longer reach is skipped with a warning instead of raising.

        Returns:
            The order after the update, or None when no order matches
        """
        order = None
        if payment_intent_id:
            order = await OrderRepository.get_by_payment_intent(payment_intent_id, session)
        if order is None and order_number:
            order = await OrderRepository.get_by_number(order_number, session)
        if order is None:
            return None

        order_status, order_payment_status = PAYMENT_RESULT_STATUSES[payment_status]
        if not can_transition_order(order.status, order_status):
            logger.warning(f"[Order] {order.order_number}: ignoring status {order_status.value} "
                           f"(currently {order.status.value})")
            order_status = order.status
        if not can_transition_payment(order.payment_status, order_payment_status):
            logger.warning(f"[Order] {order.order_number}: ignoring payment status {order_payment_status.value} "
                           f"(currently {order.payment_status.value})")
            order_payment_status = order.payment_status
        if order_status == order.status and order_payment_status == order.payment_status:
            return order

        updated = await OrderRepository.update(order.id, session, status=order_status,
                                               payment_status=order_payment_status,
                                               payment_intent_id=None if order.payment_intent_id else payment_intent_id)
        await OrderRepository.add_history(order.id, order_status, order_payment_status,
                                          note or f"Payment {payment_status.value}", session)
        await session_commit(session)
        logger.info(f"[Order] {order.order_number}: {order.status.value}/{order.payment_status.value} -> "
                    f"{order_status.value}/{order_payment_status.value} after payment {payment_status.value}")
        return updated

    @staticmethod
    async def sync_from_transaction(session: AsyncSession, transaction: PaymentTransactionDTO,
                                    note: str | None = None) -> OrderDTO | None:
        return await OrderService.update_order_from_payment(session, transaction.status,
                                                            payment_intent_id=transaction.payment_intent_id,
                                                            order_number=transaction.order_reference,
                                                            note=note)
