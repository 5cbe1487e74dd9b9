from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from enums.product_sort_order import ProductSortOrder
from exceptions.product import ProductNotFoundException
from models.product import ProductFilters
from services.product import ProductService
from web.dependencies import get_session

product_router = APIRouter(prefix="/api/products", tags=["products"])


@product_router.get("")
async def list_products(min_price: float | None = Query(default=None, alias="minPrice", ge=0),
                        max_price: float | None = Query(default=None, alias="maxPrice", ge=0),
                        category_id: int | None = Query(default=None, alias="categoryId"),
                        in_stock_only: bool = Query(default=False, alias="inStockOnly"),
                        sort_order: ProductSortOrder = Query(default=ProductSortOrder.FEATURED, alias="sortOrder"),
                        search: str | None = Query(default=None, max_length=100),
                        cursor: str | None = Query(default=None),
                        page: int | None = Query(default=None, ge=1),
                        limit: int | None = Query(default=None, ge=1),
                        session: AsyncSession = Depends(get_session)):
    """
    Storefront listing. Without a page number the listing is an id-ordered
    walk: the first call starts it and nextCursor continues it. With a page
    number it is offset based and sorted by sortOrder.
    """
    filters = ProductFilters(
        min_price=min_price,
        max_price=max_price,
        category_id=category_id,
        in_stock_only=in_stock_only,
        sort_order=sort_order,
        search=search or None,
    )
    product_page = await ProductService.get_products(session, limit=limit, cursor=cursor, page=page,
                                                     filters=filters)
    return product_page.to_client()


@product_router.get("/{product_id}")
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    product = await ProductService.get_product(product_id, session)
    if not product.is_active:
        # Inactive products are back-office only
        raise ProductNotFoundException(product_id=product_id)
    return product.to_client()
