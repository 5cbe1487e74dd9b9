from sqlalchemy import select, func, delete, or_, Select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.product_sort_order import ProductSortOrder
from models.category import Category
from models.product import Product, ProductDTO, ProductFilters, ProductVariant, ProductVariantDTO, product_categories


class ProductRepository:

    @staticmethod
    def _apply_filters(stmt: Select, filters: ProductFilters) -> Select:
        if filters.active_only:
            stmt = stmt.where(Product.is_active == True)
        if filters.min_price is not None:
            stmt = stmt.where(Product.retail_price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Product.retail_price <= filters.max_price)
        if filters.in_stock_only:
            stmt = stmt.where(Product.stock > 0)
        if filters.category_id is not None:
            in_category = (select(product_categories.c.product_id)
                           .where(product_categories.c.category_id == filters.category_id))
            stmt = stmt.where(Product.id.in_(in_category))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        return stmt

    @staticmethod
    def _apply_sort(stmt: Select, sort_order: ProductSortOrder) -> Select:
        # id is always the final tie-breaker so page boundaries are deterministic
        match sort_order:
            case ProductSortOrder.PRICE_ASC:
                return stmt.order_by(Product.retail_price.asc(), Product.id.asc())
            case ProductSortOrder.PRICE_DESC:
                return stmt.order_by(Product.retail_price.desc(), Product.id.asc())
            case ProductSortOrder.NEWEST:
                return stmt.order_by(Product.created_at.desc(), Product.id.desc())
            case ProductSortOrder.NAME_ASC:
                return stmt.order_by(Product.name.asc(), Product.id.asc())
            case _:
                return stmt.order_by(Product.featured.desc(), Product.created_at.desc(), Product.id.desc())

    @staticmethod
    async def count(filters: ProductFilters, session: AsyncSession) -> int:
        stmt = ProductRepository._apply_filters(select(func.count(Product.id)), filters)
        count = await session_execute(stmt, session)
        return count.scalar_one()

    @staticmethod
    async def get_after_cursor(cursor_id: int, limit: int, filters: ProductFilters,
                               session: AsyncSession) -> list[ProductDTO]:
        """Keyset page: products with id > cursor_id, ascending by id."""
        stmt = ProductRepository._apply_filters(select(Product), filters)
        stmt = stmt.where(Product.id > cursor_id).order_by(Product.id.asc()).limit(limit)
        products = await session_execute(stmt, session)
        return [ProductDTO.model_validate(product, from_attributes=True)
                for product in products.scalars().all()]

    @staticmethod
    async def get_page(page: int, limit: int, filters: ProductFilters,
                       session: AsyncSession) -> list[ProductDTO]:
        stmt = ProductRepository._apply_filters(select(Product), filters)
        stmt = ProductRepository._apply_sort(stmt, filters.sort_order)
        stmt = stmt.offset((page - 1) * limit).limit(limit)
        products = await session_execute(stmt, session)
        return [ProductDTO.model_validate(product, from_attributes=True)
                for product in products.scalars().all()]

    @staticmethod
    async def _get_model(product_id: int, session: AsyncSession) -> Product | None:
        stmt = (select(Product)
                .where(Product.id == product_id)
                .execution_options(populate_existing=True))
        product = await session_execute(stmt, session)
        return product.scalar_one_or_none()

    @staticmethod
    async def get_by_id(product_id: int, session: AsyncSession) -> ProductDTO | None:
        product = await ProductRepository._get_model(product_id, session)
        if product is None:
            return None
        return ProductDTO.model_validate(product, from_attributes=True)

    @staticmethod
    async def get_by_sku(sku: str, session: AsyncSession) -> ProductDTO | None:
        stmt = select(Product).where(Product.sku == sku)
        product = await session_execute(stmt, session)
        product = product.scalar_one_or_none()
        if product is None:
            return None
        return ProductDTO.model_validate(product, from_attributes=True)

    @staticmethod
    async def _load_categories(category_ids: list[int], session: AsyncSession) -> list[Category]:
        if not category_ids:
            return []
        stmt = select(Category).where(Category.id.in_(category_ids))
        categories = await session_execute(stmt, session)
        return list(categories.scalars().all())

    @staticmethod
    async def create(values: dict, category_ids: list[int], session: AsyncSession) -> ProductDTO:
        product = Product(**values)
        product.categories = await ProductRepository._load_categories(category_ids, session)
        product.variants = []
        session.add(product)
        await session_flush(session)
        return await ProductRepository.get_by_id(product.id, session)

    @staticmethod
    async def update(product_id: int, values: dict, category_ids: list[int] | None,
                     session: AsyncSession) -> ProductDTO | None:
        product = await ProductRepository._get_model(product_id, session)
        if product is None:
            return None
        for key, value in values.items():
            setattr(product, key, value)
        if category_ids is not None:
            product.categories = await ProductRepository._load_categories(category_ids, session)
        await session_flush(session)
        return await ProductRepository.get_by_id(product_id, session)

    @staticmethod
    async def delete(product_id: int, session: AsyncSession) -> bool:
        result = await session_execute(delete(Product).where(Product.id == product_id), session)
        await session_flush(session)
        return result.rowcount > 0

    @staticmethod
    async def get_variant(variant_id: int, session: AsyncSession) -> ProductVariantDTO | None:
        stmt = select(ProductVariant).where(ProductVariant.id == variant_id)
        variant = await session_execute(stmt, session)
        variant = variant.scalar_one_or_none()
        if variant is None:
            return None
        return ProductVariantDTO.model_validate(variant, from_attributes=True)

    @staticmethod
    async def get_variants(product_id: int, session: AsyncSession) -> list[ProductVariantDTO]:
        stmt = (select(ProductVariant)
                .where(ProductVariant.product_id == product_id)
                .order_by(ProductVariant.id))
        variants = await session_execute(stmt, session)
        return [ProductVariantDTO.model_validate(variant, from_attributes=True)
                for variant in variants.scalars().all()]

    @staticmethod
    async def add_variant(variant_dto: ProductVariantDTO, session: AsyncSession) -> ProductVariantDTO:
        variant = ProductVariant(**variant_dto.model_dump(exclude={'id'}))
        session.add(variant)
        product = await ProductRepository._get_model(variant_dto.product_id, session)
        product.has_variants = True
        await session_flush(session)
        return ProductVariantDTO.model_validate(variant, from_attributes=True)
