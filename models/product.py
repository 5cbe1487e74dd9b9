from datetime import datetime

from pydantic import Field, computed_field, field_validator
from sqlalchemy import (Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text, Table,
                        CheckConstraint)
from sqlalchemy.orm import relationship

from enums.product_sort_order import ProductSortOrder
from models.base import Base, CamelModel

# Many-to-many: a product can be listed in several categories
product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = 'products'

    # Monotonic ids are what keyset pagination walks over
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    retail_price = Column(Float, nullable=False)
    business_price = Column(Float, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)
    sku = Column(String(64), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    has_variants = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    categories = relationship("Category", secondary=product_categories, lazy="selectin")
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan",
                            lazy="selectin")

    __table_args__ = (
        CheckConstraint('retail_price >= 0', name='check_retail_price_non_negative'),
        CheckConstraint('stock >= 0', name='check_stock_non_negative'),
    )


class ProductVariant(Base):
    __tablename__ = 'product_variants'

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    sku = Column(String(64), nullable=True, unique=True)
    price = Column(Float, nullable=True)  # NULL: inherits product retail_price
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint('stock >= 0', name='check_variant_stock_non_negative'),
    )


class ProductVariantDTO(CamelModel):
    id: int | None = None
    product_id: int | None = None
    name: str | None = None
    sku: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    is_active: bool = True


class ProductCategoryRefDTO(CamelModel):
    id: int
    name: str
    slug: str


class ProductDTO(CamelModel):
    id: int | None = None
    name: str | None = None
    description: str | None = None
    retail_price: float | None = None
    business_price: float | None = None
    stock: int = 0
    image_url: str | None = None
    sku: str | None = None
    is_active: bool = True
    featured: bool = False
    has_variants: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    categories: list[ProductCategoryRefDTO] = Field(default_factory=list)
    variants: list[ProductVariantDTO] = Field(default_factory=list)

    @computed_field
    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class ProductCreateDTO(CamelModel):
    name: str
    sku: str
    description: str | None = None
    retail_price: float
    business_price: float | None = None
    stock: int = 0
    image_url: str | None = None
    is_active: bool = True
    featured: bool = False
    category_ids: list[int] = Field(default_factory=list)

    @field_validator("name", "sku")
    @classmethod
    def required_text(cls, value: str) -> str:
        if value is None or not value.strip():
            raise ValueError("is required")
        return value.strip()

    @field_validator("retail_price", "business_price", "stock")
    @classmethod
    def non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("must be non-negative")
        return value


class ProductUpdateDTO(CamelModel):
    """Partial update: only fields present in the request are written."""
    name: str | None = None
    sku: str | None = None
    description: str | None = None
    retail_price: float | None = Field(default=None, ge=0)
    business_price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    is_active: bool | None = None
    featured: bool | None = None
    category_ids: list[int] | None = None


class ProductFilters(CamelModel):
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    category_id: int | None = None
    in_stock_only: bool = False
    sort_order: ProductSortOrder = ProductSortOrder.FEATURED
    search: str | None = None
    active_only: bool = True


class ProductCursor(CamelModel):
    """Decoded continuation token: the last product of the previous page."""
    id: int
    price: float | None = None
    name: str | None = None
    created_at: datetime | None = None
    featured: bool = False


class ProductPage(CamelModel):
    products: list[ProductDTO] = Field(default_factory=list)
    total: int = 0
    limit: int = 12
    page: int | None = None
    next_cursor: str | None = None
    has_more: bool = False
