from datetime import datetime

from pydantic import Field

from models.base import CamelModel


class ReceiptItemDTO(CamelModel):
    name: str
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    total: float = 0.0


class StoreInfoDTO(CamelModel):
    name: str
    address: str = ""
    email: str | None = None
    website: str | None = None


class ReceiptDTO(CamelModel):
    receipt_number: str
    payment_id: str
    payment_date: datetime
    payment_method: str
    payment_provider: str
    status: str
    customer_name: str | None = None
    customer_email: str | None = None
    items: list[ReceiptItemDTO] = Field(default_factory=list)
    subtotal: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    refunded: float = 0.0
    total: float = 0.0
    currency: str = "USD"
    order_reference: str | None = None
    store_info: StoreInfoDTO
