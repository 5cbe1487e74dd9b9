from datetime import datetime

from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, Float, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base import Base, CamelModel


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True)
    quantity = Column(Integer, nullable=False)
    # Unit price captured server-side when the line was added.
    # Never taken from the client.
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        UniqueConstraint('cart_id', 'product_id', 'variant_id', name='uq_cart_product_variant'),
    )


class CartItemDTO(CamelModel):
    id: int | None = None
    cart_id: int | None = None
    product_id: int | None = None
    variant_id: int | None = None
    quantity: int | None = None
    price: float | None = None
    product_name: str | None = None
    product_sku: str | None = None
    image_url: str | None = None
    created_at: datetime | None = None

    @property
    def line_total(self) -> float:
        return round((self.price or 0.0) * (self.quantity or 0), 2)
