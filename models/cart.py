# A cart belongs either to an authenticated user (user_id) or to a browser
# session (anonymous_id from the cart cookie). After login the anonymous
# cart is merged into the user cart and kept with status MERGED.
from datetime import datetime

from pydantic import Field
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.cart import CartStatus
from models.base import Base, CamelModel
from models.cartItem import CartItemDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=True, index=True)
    anonymous_id = Column(String(64), nullable=True, index=True)
    status = Column(SQLEnum(CartStatus), nullable=False, default=CartStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('user_id IS NOT NULL OR anonymous_id IS NOT NULL', name='check_cart_has_owner'),
    )


class CartDTO(CamelModel):
    id: int | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    status: CartStatus = CartStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartSummaryDTO(CamelModel):
    cart_id: int
    items: list[CartItemDTO] = Field(default_factory=list)
    item_count: int = 0
    subtotal: float = 0.0
