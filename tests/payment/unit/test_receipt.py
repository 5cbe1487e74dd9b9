"""
Unit tests for ReceiptGenerator (payment/receipt.py).
"""

from datetime import datetime

from enums.order_status import ShippingMethod
from enums.payment_status import PaymentStatus
from models.order import AddressDTO, OrderDTO, OrderItemDTO
from models.payment_transaction import PaymentTransactionDTO
from models.receipt import ReceiptItemDTO
from payment.receipt import ReceiptGenerator


def _transaction(**overrides) -> PaymentTransactionDTO:
    values = {
        'provider': "stripe",
        'payment_intent_id': "pi_3abcdefgh12345678",
        'payment_id': "pi_3abcdefgh12345678",
        'order_reference': "ORD-42",
        'amount': 30.0,
        'currency': "USD",
        'status': PaymentStatus.COMPLETED,
        'created_at': datetime(2026, 5, 4, 10, 30),
    }
    values.update(overrides)
    return PaymentTransactionDTO(**values)


class TestReceiptNumber:

    def test_last_eight_characters_upper_cased(self):
        assert ReceiptGenerator.receipt_number("pi_3abcdefgh12345678") == "R-12345678"
        assert ReceiptGenerator.receipt_number("mock_payment_deadbeef") == "R-DEADBEEF"

    def test_missing_payment_id(self):
        assert ReceiptGenerator.receipt_number(None) == "R-UNKNOWN"


class TestGenerateReceiptData:

    def test_single_line_without_items(self):
        receipt = ReceiptGenerator.generate_receipt_data(_transaction(), shipping=5.0, tax=1.0)

        assert len(receipt.items) == 1
        assert receipt.items[0].name == "Order ORD-42"
        assert receipt.items[0].total == 24.0
        assert receipt.total == 30.0
        assert receipt.payment_provider == "STRIPE"
        assert receipt.status == "completed"

    def test_line_totals_from_items(self):
        items = [
            ReceiptItemDTO(name="Mug", quantity=2, price=7.5),
            ReceiptItemDTO(name="Poster", quantity=1, price=15.0),
        ]

        receipt = ReceiptGenerator.generate_receipt_data(_transaction(), items=items,
                                                         payment_method="paypal")

        assert [item.total for item in receipt.items] == [15.0, 15.0]
        assert receipt.subtotal == 30.0
        assert receipt.payment_method == "PayPal"

    def test_lines_from_order(self):
        order = OrderDTO(
            order_number="NO-20260504-AB12",
            email="ada@example.com",
            shipping_address=AddressDTO(first_name="Ada", last_name="Lovelace", phone="555", address1="1 Main St",
                                        city="Springfield", state="IL", postal_code="62701", country="US"),
            shipping_method=ShippingMethod.STANDARD,
            subtotal=15.0, shipping_cost=9.99, tax=2.5, total=27.49, currency="USD",
            items=[OrderItemDTO(name="Mug", quantity=2, unit_price=7.5, total_price=15.0)],
        )

        receipt = ReceiptGenerator.generate_receipt_data(_transaction(amount=27.49), order=order)

        assert [(item.name, item.quantity, item.total) for item in receipt.items] == [("Mug", 2, 15.0)]
        assert (receipt.shipping, receipt.tax, receipt.total) == (9.99, 2.5, 27.49)
        assert receipt.customer_name == "Ada Lovelace"
        assert receipt.customer_email == "ada@example.com"
        assert receipt.order_reference == "NO-20260504-AB12"

    def test_store_info_from_settings(self):
        receipt = ReceiptGenerator.generate_receipt_data(_transaction())

        assert receipt.store_info.name == "Shopfront"


class TestFormatReceiptText:

    def test_text_layout(self):
        items = [ReceiptItemDTO(name="Mug", quantity=2, price=7.5)]
        receipt = ReceiptGenerator.generate_receipt_data(
            _transaction(amount=15.0, refunded_amount=5.0), items=items, customer_name="Ada Lovelace")

        text = ReceiptGenerator.format_receipt_text(receipt)

        assert "Receipt: R-12345678" in text
        assert "Date: 2026-05-04 10:30" in text
        assert "Customer: Ada Lovelace" in text
        assert "2 x Mug @ $7.50" in text
        assert "Refunded" in text
        assert "Paid with Credit Card via STRIPE" in text
        for line in text.splitlines():
            if line.startswith("Total"):
                assert line.endswith("$15.00")
                assert len(line) == 40
