from datetime import datetime

from pydantic import Field, field_validator
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text, JSON, CheckConstraint, \
    Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.order_status import OrderStatus, OrderPaymentStatus, ShippingMethod
from models.base import Base, CamelModel


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True)
    order_number = Column(String(20), nullable=False, unique=True, index=True)  # NO-YYYYMMDD-XXXX
    # Same ownership pair as the cart it came from
    user_id = Column(String(64), nullable=True, index=True)
    anonymous_id = Column(String(64), nullable=True, index=True)
    cart_id = Column(Integer, ForeignKey('carts.id', ondelete='SET NULL'), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(SQLEnum(OrderPaymentStatus), nullable=False, default=OrderPaymentStatus.PENDING)
    payment_intent_id = Column(String(255), nullable=True, index=True)
    payment_provider = Column(String(20), nullable=True)

    # Address snapshots (AddressDTO.model_dump())
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    shipping_method = Column(SQLEnum(ShippingMethod), nullable=False, default=ShippingMethod.STANDARD)

    subtotal = Column(Float, nullable=False)
    shipping_cost = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', lazy='selectin',
                         order_by='OrderItem.id')

    __table_args__ = (
        CheckConstraint('total >= 0', name='check_order_total_non_negative'),
    )


class OrderItem(Base):
    """One purchased line, copied from the cart so later catalogue edits do not alter it."""
    __tablename__ = 'order_items'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    variant_id = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    image_url = Column(String, nullable=True)

    order = relationship('Order', back_populates='items')

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_item_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='check_order_item_price_non_negative'),
    )


class OrderStatusHistory(Base):
    __tablename__ = 'order_status_history'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(SQLEnum(OrderStatus), nullable=False)
    payment_status = Column(SQLEnum(OrderPaymentStatus), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class AddressDTO(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str | None = None
    phone: str = Field(..., min_length=1, max_length=40)
    address1: str = Field(..., min_length=1, max_length=255)
    address2: str | None = None
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=2)


class OrderItemDTO(CamelModel):
    id: int | None = None
    order_id: int | None = None
    product_id: int | None = None
    variant_id: int | None = None
    name: str
    sku: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    image_url: str | None = None


class OrderDTO(CamelModel):
    id: int | None = None
    order_number: str | None = None
    user_id: str | None = None
    anonymous_id: str | None = Field(default=None, exclude=True)
    cart_id: int | None = None
    email: str
    status: OrderStatus = OrderStatus.PENDING
    payment_status: OrderPaymentStatus = OrderPaymentStatus.PENDING
    payment_intent_id: str | None = None
    payment_provider: str | None = None
    shipping_address: AddressDTO | None = None
    billing_address: AddressDTO | None = None
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    subtotal: float
    shipping_cost: float = 0.0
    tax: float = 0.0
    total: float
    currency: str
    notes: str | None = None
    items: list[OrderItemDTO] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderStatusHistoryDTO(CamelModel):
    id: int | None = None
    order_id: int
    status: OrderStatus
    payment_status: OrderPaymentStatus
    note: str | None = None
    created_at: datetime | None = None


class CheckoutDTO(CamelModel):
    """What the customer submits at checkout. Amounts are always computed server-side."""
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    shipping_address: AddressDTO
    billing_address: AddressDTO | None = None
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    notes: str | None = Field(default=None, max_length=1000)
    provider: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class OrderStatusUpdateDTO(CamelModel):
    status: OrderStatus
    note: str | None = Field(default=None, max_length=1000)


class OrderPaymentStatusUpdateDTO(CamelModel):
    payment_status: OrderPaymentStatus
    note: str | None = Field(default=None, max_length=1000)


class OrderFilters(CamelModel):
    status: OrderStatus | None = None
    payment_status: OrderPaymentStatus | None = None
    email: str | None = None
    user_id: str | None = None
    anonymous_id: str | None = None        # guest orders only (user_id IS NULL)
    search: str | None = None              # order number or e-mail fragment
    date_from: datetime | None = None
    date_to: datetime | None = None
    min_total: float | None = Field(default=None, ge=0)
    max_total: float | None = Field(default=None, ge=0)
    newest_first: bool = True


class OrderPage(CamelModel):
    orders: list[OrderDTO] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int = 0
