"""
Back-office API: category, product and order management.

Every route requires the X-Admin-Token header (see require_admin).
"""
from datetime import datetime

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from enums.order_status import OrderStatus, OrderPaymentStatus
from models.base import CamelModel
from models.category import CategoryCreateDTO, CategoryUpdateDTO, CategoryPositionDTO
from models.order import OrderFilters, OrderStatusUpdateDTO, OrderPaymentStatusUpdateDTO
from models.product import ProductUpdateDTO, ProductFilters, ProductVariantDTO
from services.category import CategoryService
from services.order import OrderService
from services.product import ProductService
from web.dependencies import get_session, require_admin

admin_router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class CategoryPositionsPayload(CamelModel):
    positions: list[CategoryPositionDTO] = Field(..., min_length=1)


class HighlightPayload(CamelModel):
    category_ids: list[int] = Field(..., min_length=1)
    is_highlighted: bool


class PriorityPayload(CamelModel):
    priority: int


class ProductCategoriesPayload(CamelModel):
    category_ids: list[int] = Field(default_factory=list)


# Categories

@admin_router.get("/categories")
async def admin_list_categories(tree: bool = Query(default=True),
                                session: AsyncSession = Depends(get_session)):
    categories = await CategoryService.get_categories(session, active_only=False, include_children=tree,
                                                      roots_only=False)
    return {'categories': [category.to_client() for category in categories]}


@admin_router.post("/categories", status_code=status.HTTP_201_CREATED)
async def admin_create_category(payload: CategoryCreateDTO, session: AsyncSession = Depends(get_session)):
    category = await CategoryService.create_category(payload, session)
    return category.to_client()


@admin_router.put("/categories/{category_id}")
async def admin_update_category(category_id: int, payload: CategoryUpdateDTO,
                                session: AsyncSession = Depends(get_session)):
    category = await CategoryService.update_category(category_id, payload, session)
    return category.to_client()


@admin_router.delete("/categories/{category_id}")
async def admin_delete_category(category_id: int, session: AsyncSession = Depends(get_session)):
    await CategoryService.delete_category(category_id, session)
    return {'deleted': True, 'id': category_id}


@admin_router.post("/categories/positions")
async def admin_update_positions(payload: CategoryPositionsPayload, session: AsyncSession = Depends(get_session)):
    updated = await CategoryService.update_positions(payload.positions, session)
    return {'updated': updated}


@admin_router.post("/categories/highlight")
async def admin_update_highlight(payload: HighlightPayload, session: AsyncSession = Depends(get_session)):
    updated = await CategoryService.update_highlight_status(payload.category_ids, payload.is_highlighted, session)
    return {'updated': updated}


@admin_router.post("/categories/{category_id}/priority")
async def admin_update_priority(category_id: int, payload: PriorityPayload,
                                session: AsyncSession = Depends(get_session)):
    await CategoryService.get_category(category_id, session)
    updated = await CategoryService.update_highlight_priority(category_id, payload.priority, session)
    return {'updated': updated}


@admin_router.post("/categories/{category_id}/visibility")
async def admin_toggle_visibility(category_id: int, session: AsyncSession = Depends(get_session)):
    category = await CategoryService.toggle_visibility(category_id, session)
    return category.to_client()


# Products

@admin_router.get("/products")
async def admin_list_products(page: int = Query(default=1, ge=1),
                              limit: int | None = Query(default=None, ge=1),
                              search: str | None = Query(default=None, max_length=100),
                              session: AsyncSession = Depends(get_session)):
    filters = ProductFilters(active_only=False, search=search or None)
    product_page = await ProductService.get_products(session, limit=limit, page=page, filters=filters)
    return product_page.to_client()


@admin_router.get("/products/sku/{sku}")
async def admin_product_by_sku(sku: str, session: AsyncSession = Depends(get_session)):
    product = await ProductService.get_product_by_sku(sku, session)
    return product.to_client()


@admin_router.post("/products", status_code=status.HTTP_201_CREATED)
async def admin_create_product(payload: dict = Body(...), session: AsyncSession = Depends(get_session)):
    product_dto = ProductService.validate_product_data(payload)
    product = await ProductService.create_product(product_dto, session)
    return product.to_client()


@admin_router.put("/products/{product_id}")
async def admin_update_product(product_id: int, payload: ProductUpdateDTO,
                               session: AsyncSession = Depends(get_session)):
    product = await ProductService.update_product(product_id, payload, session)
    return product.to_client()


@admin_router.put("/products/{product_id}/categories")
async def admin_set_product_categories(product_id: int, payload: ProductCategoriesPayload,
                                       session: AsyncSession = Depends(get_session)):
    product = await ProductService.set_product_categories(product_id, payload.category_ids, session)
    return product.to_client()


@admin_router.delete("/products/{product_id}")
async def admin_delete_product(product_id: int, session: AsyncSession = Depends(get_session)):
    await ProductService.delete_product(product_id, session)
    return {'deleted': True, 'id': product_id}


@admin_router.get("/products/{product_id}/variants")
async def admin_list_variants(product_id: int, session: AsyncSession = Depends(get_session)):
    variants = await ProductService.list_variants(product_id, session)
    return {'variants': [variant.to_client() for variant in variants]}


@admin_router.post("/products/{product_id}/variants", status_code=status.HTTP_201_CREATED)
async def admin_add_variant(product_id: int, payload: ProductVariantDTO,
                            session: AsyncSession = Depends(get_session)):
    variant = await ProductService.add_variant(product_id, payload, session)
    return variant.to_client()


# Orders

@admin_router.get("/orders")
async def admin_list_orders(status_filter: OrderStatus | None = Query(default=None, alias="status"),
                            payment_status: OrderPaymentStatus | None = Query(default=None, alias="paymentStatus"),
                            email: str | None = Query(default=None, max_length=255),
                            search: str | None = Query(default=None, max_length=100),
                            date_from: datetime | None = Query(default=None, alias="dateFrom"),
                            date_to: datetime | None = Query(default=None, alias="dateTo"),
                            min_total: float | None = Query(default=None, ge=0, alias="minTotal"),
                            max_total: float | None = Query(default=None, ge=0, alias="maxTotal"),
                            limit: int = Query(default=20, ge=1, le=100),
                            offset: int = Query(default=0, ge=0),
                            session: AsyncSession = Depends(get_session)):
    filters = OrderFilters(status=status_filter, payment_status=payment_status, email=email or None,
                           search=search or None, date_from=date_from, date_to=date_to,
                           min_total=min_total, max_total=max_total)
    order_page = await OrderService.list_orders(session, filters, limit=limit, offset=offset)
    return order_page.to_client()


@admin_router.get("/orders/{order_id}")
async def admin_get_order(order_id: int, session: AsyncSession = Depends(get_session)):
    order = await OrderService.get_order(session, order_id)
    history = await OrderService.get_history(session, order_id)
    return {**order.to_client(), 'history': [entry.to_client() for entry in history]}


@admin_router.put("/orders/{order_id}/status")
async def admin_update_order_status(order_id: int, payload: OrderStatusUpdateDTO,
                                    session: AsyncSession = Depends(get_session)):
    order = await OrderService.update_order_status(session, order_id, payload.status, payload.note)
    return order.to_client()


@admin_router.put("/orders/{order_id}/payment-status")
async def admin_update_order_payment_status(order_id: int, payload: OrderPaymentStatusUpdateDTO,
                                            session: AsyncSession = Depends(get_session)):
    order = await OrderService.update_payment_status(session, order_id, payload.payment_status, payload.note)
    return order.to_client()
