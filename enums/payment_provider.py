from enum import Enum


class PaymentProviderType(str, Enum):
    SQUARE = "square"
    STRIPE = "stripe"
    MOCK = "mock"


class PaymentMethodType(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    SQUARE = "square"
    STRIPE = "stripe"
