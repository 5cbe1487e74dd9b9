"""
Payment receipts.

generate_receipt_data() builds the structured receipt returned by the API;
format_receipt_text() renders it as plain text for e-mails and printing.
"""
from datetime import datetime

import config
from enums.currency import Currency
from models.order import OrderDTO
from models.payment_transaction import PaymentTransactionDTO
from models.receipt import ReceiptDTO, ReceiptItemDTO, StoreInfoDTO

PAYMENT_METHOD_NAMES = {
    'credit_card': "Credit Card",
    'debit_card': "Debit Card",
    'paypal': "PayPal",
    'bank_transfer': "Bank Transfer",
    'apple_pay': "Apple Pay",
    'google_pay': "Google Pay",
    'card': "Credit Card",
}

RECEIPT_WIDTH = 40


def _currency_symbol(currency: str) -> str:
    try:
        return Currency(currency.upper()).get_symbol()
    except ValueError:
        return f"{currency} "


class ReceiptGenerator:

    @staticmethod
    def receipt_number(payment_id: str | None) -> str:
        if not payment_id:
            return "R-UNKNOWN"
        return f"R-{payment_id[-8:].upper()}"

    @staticmethod
    def generate_receipt_data(transaction: PaymentTransactionDTO,
                              items: list[ReceiptItemDTO] | None = None,
                              customer_name: str | None = None,
                              customer_email: str | None = None,
                              payment_method: str | None = None,
                              shipping: float = 0.0,
                              tax: float = 0.0,
                              order: OrderDTO | None = None) -> ReceiptDTO:
        """
        Build receipt data for a stored payment.

        With an order, lines, shipping, tax and customer come from the order.
        Without line items the receipt carries a single line for the whole
        payment amount, so the totals always add up to what was charged.

        Args:
            transaction: Stored payment record
            items: Purchased lines (name, quantity, unit price)
            customer_name: Name printed on the receipt
            customer_email: E-mail printed on the receipt
            payment_method: Method type id (credit_card, paypal, ...)
            shipping: Shipping cost included in the payment
            tax: Tax included in the payment
            order: Order paid by this transaction
        """
        payment_id = transaction.payment_id or transaction.payment_intent_id
        if order is not None:
            items = [ReceiptItemDTO(name=item.name, quantity=item.quantity, price=item.unit_price)
                     for item in order.items]
            shipping, tax = order.shipping_cost, order.tax
            customer_email = customer_email or order.email
            if customer_name is None and order.shipping_address is not None:
                customer_name = f"{order.shipping_address.first_name} {order.shipping_address.last_name}"
        if items:
            lines = [item.model_copy(update={'total': round(item.price * item.quantity, 2)}) for item in items]
        else:
            description = f"Order {transaction.order_reference}" if transaction.order_reference else "Payment"
            base = round(transaction.amount - shipping - tax, 2)
            lines = [ReceiptItemDTO(name=description, quantity=1, price=base, total=base)]
        subtotal = round(sum(line.total for line in lines), 2)

        return ReceiptDTO(
            receipt_number=ReceiptGenerator.receipt_number(payment_id),
            payment_id=payment_id or "UNKNOWN",
            payment_date=transaction.updated_at or transaction.created_at or datetime.now(),
            payment_method=PAYMENT_METHOD_NAMES.get(payment_method or "", "Credit Card"),
            payment_provider=(transaction.provider or "unknown").upper(),
            status=transaction.status.value,
            customer_name=customer_name,
            customer_email=customer_email,
            items=lines,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            refunded=transaction.refunded_amount,
            total=round(subtotal + shipping + tax, 2),
            currency=transaction.currency or config.CURRENCY.value,
            order_reference=order.order_number if order is not None else transaction.order_reference,
            store_info=StoreInfoDTO(
                name=config.STORE_NAME,
                address=config.STORE_ADDRESS,
                email=config.STORE_EMAIL or None,
                website=config.STORE_WEBSITE or None,
            ),
        )

    @staticmethod
    def _amount_line(label: str, amount: float, symbol: str) -> str:
        value = f"{symbol}{amount:.2f}"
        return f"{label:<{RECEIPT_WIDTH - len(value)}}{value}\n"

    @staticmethod
    def format_receipt_text(receipt: ReceiptDTO) -> str:
        symbol = _currency_symbol(receipt.currency)
        separator = "─" * RECEIPT_WIDTH + "\n"

        text = f"{receipt.store_info.name}\n"
        if receipt.store_info.address:
            text += f"{receipt.store_info.address}\n"
        if receipt.store_info.email:
            text += f"{receipt.store_info.email}\n"
        if receipt.store_info.website:
            text += f"{receipt.store_info.website}\n"
        text += separator
        text += f"Receipt: {receipt.receipt_number}\n"
        text += f"Date: {receipt.payment_date.strftime('%Y-%m-%d %H:%M')}\n"
        if receipt.order_reference:
            text += f"Order: {receipt.order_reference}\n"
        if receipt.customer_name:
            text += f"Customer: {receipt.customer_name}\n"
        if receipt.customer_email:
            text += f"E-mail: {receipt.customer_email}\n"
        text += separator

        for item in receipt.items:
            if item.quantity == 1:
                text += ReceiptGenerator._amount_line(item.name, item.total, symbol)
            else:
                text += ReceiptGenerator._amount_line(
                    f"{item.quantity} x {item.name} @ {symbol}{item.price:.2f}", item.total, symbol)
        text += separator

        text += ReceiptGenerator._amount_line("Subtotal", receipt.subtotal, symbol)
        if receipt.shipping:
            text += ReceiptGenerator._amount_line("Shipping", receipt.shipping, symbol)
        if receipt.tax:
            text += ReceiptGenerator._amount_line("Tax", receipt.tax, symbol)
        text += ReceiptGenerator._amount_line("Total", receipt.total, symbol)
        if receipt.refunded:
            text += ReceiptGenerator._amount_line("Refunded", receipt.refunded, symbol)
        text += separator
        text += f"Paid with {receipt.payment_method} via {receipt.payment_provider}\n"
        text += f"Payment ID: {receipt.payment_id}\n"
        text += f"Status: {receipt.status}\n"
        return text
