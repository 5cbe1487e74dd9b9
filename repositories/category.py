from sqlalchemy import select, update, delete, func, nulls_last
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.category import Category, CategoryDTO


class CategoryRepository:

    @staticmethod
    async def get_all(session: AsyncSession,
                      is_highlighted: bool | None = None,
                      is_visible: bool | None = None,
                      is_active: bool | None = None,
                      parent_id: int | None = None,
                      roots_only: bool = False) -> list[CategoryDTO]:
        stmt = select(Category)
        if is_highlighted is not None:
            stmt = stmt.where(Category.is_highlighted == is_highlighted)
        if is_visible is not None:
            stmt = stmt.where(Category.is_visible == is_visible)
        if is_active is not None:
            stmt = stmt.where(Category.is_active == is_active)
        if parent_id is not None:
            stmt = stmt.where(Category.parent_id == parent_id)
        elif roots_only:
            stmt = stmt.where(Category.parent_id.is_(None))
        stmt = stmt.order_by(Category.sort_order, Category.position, Category.id)
        categories = await session_execute(stmt, session)
        return [CategoryDTO.model_validate(category, from_attributes=True)
                for category in categories.scalars().all()]

    @staticmethod
    async def get_highlighted(session: AsyncSession, visible_only: bool = True,
                              limit: int | None = None) -> list[CategoryDTO]:
        stmt = select(Category).where(Category.is_highlighted == True)
        if visible_only:
            stmt = stmt.where(Category.is_visible == True, Category.is_active == True)
        stmt = stmt.order_by(nulls_last(Category.highlight_priority.asc()), Category.name)
        if limit is not None:
            stmt = stmt.limit(limit)
        categories = await session_execute(stmt, session)
        return [CategoryDTO.model_validate(category, from_attributes=True)
                for category in categories.scalars().all()]

    @staticmethod
    async def get_by_id(category_id: int, session: AsyncSession) -> CategoryDTO | None:
        stmt = (select(Category)
                .where(Category.id == category_id)
                .execution_options(populate_existing=True))
        category = await session_execute(stmt, session)
        category = category.scalar_one_or_none()
        if category is None:
            return None
        return CategoryDTO.model_validate(category, from_attributes=True)

    @staticmethod
    async def get_by_slug(slug: str, session: AsyncSession) -> CategoryDTO | None:
        stmt = select(Category).where(Category.slug == slug)
        category = await session_execute(stmt, session)
        category = category.scalar_one_or_none()
        if category is None:
            return None
        return CategoryDTO.model_validate(category, from_attributes=True)

    @staticmethod
    async def slug_exists(slug: str, session: AsyncSession, exclude_id: int | None = None) -> bool:
        stmt = select(func.count()).select_from(Category).where(Category.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        count = await session_execute(stmt, session)
        return count.scalar() > 0

    @staticmethod
    async def get_parent_map(session: AsyncSession) -> dict[int, int | None]:
        """id -> parent_id for every category, used for cycle checks."""
        stmt = select(Category.id, Category.parent_id)
        rows = await session_execute(stmt, session)
        return {row.id: row.parent_id for row in rows.all()}

    @staticmethod
    async def create(category_dto: CategoryDTO, session: AsyncSession) -> CategoryDTO:
        category = Category(**category_dto.model_dump(exclude={'id', 'children', 'created_at', 'updated_at'}))
        session.add(category)
        await session_flush(session)
        await session.refresh(category)
        return CategoryDTO.model_validate(category, from_attributes=True)

    @staticmethod
    async def update(category_id: int, values: dict, session: AsyncSession) -> CategoryDTO | None:
        stmt = update(Category).where(Category.id == category_id).values(**values)
        result = await session_execute(stmt, session)
        if result.rowcount == 0:
            return None
        await session_flush(session)
        return await CategoryRepository.get_by_id(category_id, session)

    @staticmethod
    async def delete(category_id: int, session: AsyncSession) -> bool:
        # Re-parent children explicitly so the behaviour does not depend on
        # the backend honouring ON DELETE SET NULL
        await session_execute(
            update(Category).where(Category.parent_id == category_id).values(parent_id=None), session)
        result = await session_execute(delete(Category).where(Category.id == category_id), session)
        await session_flush(session)
        return result.rowcount > 0

    @staticmethod
    async def update_position(category_id: int, position: int, sort_order: int | None,
                              session: AsyncSession) -> int:
        values = {'position': position}
        if sort_order is not None:
            values['sort_order'] = sort_order
        stmt = update(Category).where(Category.id == category_id).values(**values)
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def set_highlight_status(category_ids: list[int], is_highlighted: bool,
                                   session: AsyncSession) -> int:
        values = {'is_highlighted': is_highlighted}
        if not is_highlighted:
            values['highlight_priority'] = None
        stmt = update(Category).where(Category.id.in_(category_ids)).values(**values)
        result = await session_execute(stmt, session)
        await session_flush(session)
        return result.rowcount

    @staticmethod
    async def set_highlight_priority(category_id: int, priority: int, session: AsyncSession) -> int:
        stmt = (update(Category)
                .where(Category.id == category_id, Category.is_highlighted == True)
                .values(highlight_priority=priority))
        result = await session_execute(stmt, session)
        await session_flush(session)
        return result.rowcount
