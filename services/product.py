import logging
from typing import AsyncIterator

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from exceptions.product import (
    ProductNotFoundException,
    ProductFetchException,
    InvalidProductDataException
)
from models.product import (
    ProductDTO,
    ProductCreateDTO,
    ProductUpdateDTO,
    ProductFilters,
    ProductPage,
    ProductVariantDTO
)
from repositories.product import ProductRepository
from utils.cursor import encode_cursor, decode_cursor
from utils.retry import load_more_retry

logger = logging.getLogger(__name__)


def _validation_errors(error: ValidationError) -> dict[str, str]:
    errors = {}
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "__root__"
        errors[field] = detail.get("msg", "invalid")
    return errors


class ProductService:

    @staticmethod
    async def get_products(session: AsyncSession,
                           limit: int | None = None,
                           cursor: str | None = None,
                           page: int | None = None,
                           filters: ProductFilters | None = None) -> ProductPage:
        """
        Product listing with filters and either cursor or page pagination.

        Cursor mode (no page given): products with id > cursor.id, ascending
        by id; without a cursor this is the first page of the walk. Rows
        inserted after the first page always carry a higher id, so a walk
        never repeats or skips an existing product; sort_order is not applied
        in this mode.

        Page mode (page given): offset pagination honouring
        filters.sort_order. Its rows are not id ordered, so it never hands
        out a cursor; the caller asks for page + 1 instead.

        next_cursor is only set by cursor mode, when a full page came back.

        Raises:
            InvalidCursorException: cursor cannot be decoded
            ProductFetchException: database failure
        """
        filters = filters or ProductFilters()
        limit = min(max(limit or config.PRODUCTS_PAGE_SIZE, 1), config.PRODUCTS_MAX_PAGE_SIZE)
        decoded = decode_cursor(cursor) if cursor else None

        try:
            total = await ProductRepository.count(filters, session)
            if decoded is not None or page is None:
                after_id = decoded.id if decoded is not None else 0
                products = await ProductRepository.get_after_cursor(after_id, limit, filters, session)
                current_page = None
            else:
                current_page = max(page, 1)
                products = await ProductRepository.get_page(current_page, limit, filters, session)
        except SQLAlchemyError as e:
            logger.error(f"[Product] get_products failed: {e}")
            raise ProductFetchException(str(e)) from e

        full_page = len(products) == limit
        if current_page is not None:
            next_cursor = None
            has_more = current_page * limit < total
        else:
            next_cursor = encode_cursor(products[-1]) if full_page else None
            has_more = full_page

        return ProductPage(
            products=products,
            total=total,
            limit=limit,
            page=current_page,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    @staticmethod
    async def load_more(session: AsyncSession, cursor: str | None, limit: int | None = None,
                        filters: ProductFilters | None = None) -> ProductPage:
        """Fetch the next cursor page, retrying transient failures (3 tries, 1s/2s backoff, 5s cap)."""

        @load_more_retry()
        async def _fetch() -> ProductPage:
            return await ProductService.get_products(session, limit=limit, cursor=cursor, filters=filters)

        return await _fetch()

    @staticmethod
    async def iterate_products(session: AsyncSession, limit: int | None = None,
                               filters: ProductFilters | None = None) -> AsyncIterator[ProductDTO]:
        """Walk the whole filtered catalogue page by page (infinite scroll / export)."""
        page = await ProductService.load_more(session, cursor=None, limit=limit, filters=filters)
        while True:
            for product in page.products:
                yield product
            if not page.next_cursor:
                return
            page = await ProductService.load_more(session, cursor=page.next_cursor, limit=limit,
                                                  filters=filters)

    @staticmethod
    async def get_product(product_id: int, session: AsyncSession) -> ProductDTO:
        try:
            product = await ProductRepository.get_by_id(product_id, session)
        except SQLAlchemyError as e:
            raise ProductFetchException(str(e)) from e
        if product is None:
            raise ProductNotFoundException(product_id=product_id)
        return product

    @staticmethod
    async def get_product_by_sku(sku: str, session: AsyncSession) -> ProductDTO:
        product = await ProductRepository.get_by_sku(sku, session)
        if product is None:
            raise ProductNotFoundException(sku=sku)
        return product

    @staticmethod
    def validate_product_data(data: dict) -> ProductCreateDTO:
        """
        Validate raw admin form/JSON input.

        Raises:
            InvalidProductDataException: with a field -> message map
        """
        try:
            return ProductCreateDTO.model_validate(data)
        except ValidationError as e:
            raise InvalidProductDataException(_validation_errors(e)) from e

    @staticmethod
    async def create_product(product_dto: ProductCreateDTO, session: AsyncSession) -> ProductDTO:
        if await ProductRepository.get_by_sku(product_dto.sku, session) is not None:
            raise InvalidProductDataException({'sku': f"SKU '{product_dto.sku}' already exists"})
        values = product_dto.model_dump(exclude={'category_ids'})
        try:
            created = await ProductRepository.create(values, product_dto.category_ids, session)
            await session_commit(session)
        except IntegrityError as e:
            await session.rollback()
            raise InvalidProductDataException({'__root__': "Product violates a database constraint"}) from e
        logger.info(f"[Product] Created product {created.id} (SKU {created.sku})")
        return created

    @staticmethod
    async def update_product(product_id: int, product_dto: ProductUpdateDTO, session: AsyncSession) -> ProductDTO:
        values = product_dto.model_dump(exclude_unset=True, exclude={'category_ids'})
        for field in ('name', 'sku'):
            if field in values and (values[field] is None or not str(values[field]).strip()):
                raise InvalidProductDataException({field: "is required"})
        if 'retail_price' in values and values['retail_price'] is None:
            raise InvalidProductDataException({'retail_price': "is required"})
        if values.get('sku'):
            other = await ProductRepository.get_by_sku(values['sku'], session)
            if other is not None and other.id != product_id:
                raise InvalidProductDataException({'sku': f"SKU '{values['sku']}' already exists"})

        category_ids = product_dto.category_ids if 'category_ids' in product_dto.model_fields_set else None
        try:
            updated = await ProductRepository.update(product_id, values, category_ids, session)
            await session_commit(session)
        except IntegrityError as e:
            await session.rollback()
            raise InvalidProductDataException({'__root__': "Product violates a database constraint"}) from e
        if updated is None:
            raise ProductNotFoundException(product_id=product_id)
        return updated

    @staticmethod
    async def set_product_categories(product_id: int, category_ids: list[int], session: AsyncSession) -> ProductDTO:
        return await ProductService.update_product(product_id, ProductUpdateDTO(category_ids=category_ids), session)

    @staticmethod
    async def delete_product(product_id: int, session: AsyncSession) -> None:
        deleted = await ProductRepository.delete(product_id, session)
        await session_commit(session)
        if not deleted:
            raise ProductNotFoundException(product_id=product_id)
        logger.info(f"[Product] Deleted product {product_id}")

    @staticmethod
    async def list_variants(product_id: int, session: AsyncSession) -> list[ProductVariantDTO]:
        await ProductService.get_product(product_id, session)
        return await ProductRepository.get_variants(product_id, session)

    @staticmethod
    async def add_variant(product_id: int, variant_dto: ProductVariantDTO, session: AsyncSession) -> ProductVariantDTO:
        await ProductService.get_product(product_id, session)
        if not variant_dto.name or not variant_dto.name.strip():
            raise InvalidProductDataException({'name': "is required"})
        variant_dto = variant_dto.model_copy(update={'product_id': product_id})
        try:
            created = await ProductRepository.add_variant(variant_dto, session)
            await session_commit(session)
        except IntegrityError as e:
            await session.rollback()
            raise InvalidProductDataException({'sku': "Variant SKU already exists"}) from e
        return created
