from datetime import datetime

from pydantic import Field, field_validator
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Enum as SQLEnum

from enums.category_status import CategoryStatus
from models.base import Base, CamelModel


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, unique=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(140), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    # Children survive a parent delete and become roots
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    is_visible = Column(Boolean, nullable=False, default=True)
    status = Column(SQLEnum(CategoryStatus), nullable=False, default=CategoryStatus.ACTIVE)

    # Homepage highlighting: lower priority sorts first, NULL sorts last
    is_highlighted = Column(Boolean, nullable=False, default=False)
    highlight_priority = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class CategoryDTO(CamelModel):
    id: int | None = None
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    parent_id: int | None = None
    position: int = 0
    sort_order: int = 0
    is_active: bool = True
    is_visible: bool = True
    status: CategoryStatus = CategoryStatus.ACTIVE
    is_highlighted: bool = False
    highlight_priority: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    children: list["CategoryDTO"] = Field(default_factory=list)


class CategoryCreateDTO(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    slug: str | None = Field(default=None, max_length=140)
    description: str | None = None
    parent_id: int | None = None
    position: int = 0
    sort_order: int = 0
    is_active: bool = True
    is_visible: bool = True
    status: CategoryStatus = CategoryStatus.ACTIVE

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()


class CategoryUpdateDTO(CamelModel):
    """Partial update: only fields present in the request are written."""
    name: str | None = Field(default=None, min_length=1, max_length=120)
    slug: str | None = Field(default=None, max_length=140)
    description: str | None = None
    parent_id: int | None = None
    position: int | None = None
    sort_order: int | None = None
    is_active: bool | None = None
    is_visible: bool | None = None
    status: CategoryStatus | None = None

    @field_validator("name", "position", "sort_order", "is_active", "is_visible", "status", mode="before")
    @classmethod
    def not_null(cls, value):
        # Omit the field to leave it unchanged; the columns are NOT NULL
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()


class CategoryPositionDTO(CamelModel):
    id: int
    position: int = Field(..., ge=0)
    sort_order: int | None = Field(default=None, ge=0)
