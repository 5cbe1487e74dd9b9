from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Enum as SQLEnum

from enums.payment_status import PaymentStatus
from models.base import Base, CamelModel


class PaymentTransaction(Base):
    """
    Local record of a payment handled by an external provider.

    Created when an intent is issued, updated by process/verify calls and by
    provider webhooks. The provider stays the source of truth; this row lets
    webhooks and receipts find the payment again.
    """
    __tablename__ = 'payment_transactions'

    id = Column(Integer, primary_key=True)
    provider = Column(String(20), nullable=False)
    payment_intent_id = Column(String(255), nullable=True, unique=True, index=True)
    payment_id = Column(String(255), nullable=True, index=True)
    order_reference = Column(String(64), nullable=True, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    refunded_amount = Column(Float, nullable=False, default=0.0)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class PaymentTransactionDTO(CamelModel):
    id: int | None = None
    provider: str | None = None
    payment_intent_id: str | None = None
    payment_id: str | None = None
    order_reference: str | None = None
    amount: float | None = None
    currency: str | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    refunded_amount: float = 0.0
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
