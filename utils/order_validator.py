"""
Order status rules and order total checks.

Two independent state machines: the order's fulfilment status and its
payment status. Repeating the current status is always allowed and is a
no-op for the caller.
"""
from enums.order_status import OrderStatus, OrderPaymentStatus
from enums.payment_status import PaymentStatus
from exceptions.order import InvalidOrderStatusTransitionException, InvalidOrderDataException

ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.PAID, OrderStatus.CANCELLED,
                                    OrderStatus.FAILED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.PAID, OrderStatus.COMPLETED, OrderStatus.CANCELLED,
                                       OrderStatus.FAILED, OrderStatus.PENDING}),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.REFUNDED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED, OrderStatus.PROCESSING}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.PENDING}),
    OrderStatus.REFUNDED: frozenset(),
    # A declined card leaves the order FAILED; a second card may still pay it
    OrderStatus.FAILED: frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.PAID}),
}

PAYMENT_STATUS_TRANSITIONS: dict[OrderPaymentStatus, frozenset[OrderPaymentStatus]] = {
    OrderPaymentStatus.PENDING: frozenset({OrderPaymentStatus.PROCESSING, OrderPaymentStatus.PAID,
                                           OrderPaymentStatus.FAILED, OrderPaymentStatus.CANCELLED}),
    OrderPaymentStatus.PROCESSING: frozenset({OrderPaymentStatus.PAID, OrderPaymentStatus.FAILED,
                                              OrderPaymentStatus.CANCELLED}),
    OrderPaymentStatus.PAID: frozenset({OrderPaymentStatus.REFUNDED}),
    OrderPaymentStatus.FAILED: frozenset({OrderPaymentStatus.PENDING, OrderPaymentStatus.PROCESSING,
                                          OrderPaymentStatus.PAID}),
    OrderPaymentStatus.REFUNDED: frozenset(),
    OrderPaymentStatus.CANCELLED: frozenset({OrderPaymentStatus.PENDING}),
}

# Order status and order payment status implied by a provider payment status
PAYMENT_RESULT_STATUSES: dict[PaymentStatus, tuple[OrderStatus, OrderPaymentStatus]] = {
    PaymentStatus.PENDING: (OrderStatus.PROCESSING, OrderPaymentStatus.PENDING),
    PaymentStatus.PROCESSING: (OrderStatus.PROCESSING, OrderPaymentStatus.PROCESSING),
    PaymentStatus.COMPLETED: (OrderStatus.PAID, OrderPaymentStatus.PAID),
    PaymentStatus.FAILED: (OrderStatus.FAILED, OrderPaymentStatus.FAILED),
    PaymentStatus.CANCELLED: (OrderStatus.CANCELLED, OrderPaymentStatus.CANCELLED),
    PaymentStatus.REFUNDED: (OrderStatus.REFUNDED, OrderPaymentStatus.REFUNDED),
}

TOTAL_TOLERANCE = 0.01


def can_transition_order(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested == current or requested in ORDER_STATUS_TRANSITIONS[current]


def can_transition_payment(current: OrderPaymentStatus, requested: OrderPaymentStatus) -> bool:
    return requested == current or requested in PAYMENT_STATUS_TRANSITIONS[current]


def validate_order_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """
    Raises:
        InvalidOrderStatusTransitionException: requested is not reachable from current
    """
    if not can_transition_order(current, requested):
        raise InvalidOrderStatusTransitionException("status", current.value, requested.value)


def validate_payment_transition(current: OrderPaymentStatus, requested: OrderPaymentStatus) -> None:
    """
    Raises:
        InvalidOrderStatusTransitionException: requested is not reachable from current
    """
    if not can_transition_payment(current, requested):
        raise InvalidOrderStatusTransitionException("paymentStatus", current.value, requested.value)


def validate_order_totals(lines: list[tuple[int, float]], subtotal: float, shipping_cost: float,
                          tax: float, total: float) -> None:
    """
    Check order lines and amounts before the order is written.

    Args:
        lines: (quantity, unit price) per order line
        subtotal: Sum of the line totals
        shipping_cost: Shipping charged on top of the subtotal
        tax: Tax charged on top of subtotal and shipping
        total: Amount the customer will be charged

    Raises:
        InvalidOrderDataException: with one message per offending field
    """
    errors: dict[str, str] = {}
    if not lines:
        errors['items'] = "Order must contain at least one item"
    for index, (quantity, unit_price) in enumerate(lines):
        if quantity <= 0:
            errors[f"items[{index}].quantity"] = "Quantity must be greater than zero"
        if unit_price < 0:
            errors[f"items[{index}].unitPrice"] = "Price cannot be negative"
    if shipping_cost < 0:
        errors['shippingCost'] = "Shipping cost cannot be negative"
    if tax < 0:
        errors['tax'] = "Tax cannot be negative"
    line_sum = round(sum(quantity * unit_price for quantity, unit_price in lines), 2)
    if abs(line_sum - subtotal) > TOTAL_TOLERANCE:
        errors['subtotal'] = f"Subtotal {subtotal:.2f} does not match the items ({line_sum:.2f})"
    if abs(subtotal + shipping_cost + tax - total) > TOTAL_TOLERANCE:
        errors['total'] = "Total must equal subtotal + shipping + tax"
    if errors:
        raise InvalidOrderDataException(errors)
