import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from exceptions.category import (
    CategoryNotFoundException,
    CategoryFetchException,
    CategoryWriteException,
    CategoryCycleException,
    InvalidHighlightPriorityException
)
from models.category import CategoryDTO, CategoryCreateDTO, CategoryUpdateDTO, CategoryPositionDTO
from repositories.category import CategoryRepository
from utils.category_tree import (
    build_category_tree,
    find_category_by_slug,
    flatten_tree,
    limit_depth,
    would_create_cycle
)
from utils.slug import slugify

logger = logging.getLogger(__name__)


class CategoryService:
    """
    Category reads for the storefront and writes for the back-office.

    Reads wrap database failures into CategoryFetchException ("Failed to
    fetch categories"); writes into CategoryWriteException. Writes commit
    their own session.
    """

    @staticmethod
    async def fetch_categories(session: AsyncSession,
                               is_highlighted: bool | None = None,
                               is_visible: bool | None = None) -> list[CategoryDTO]:
        try:
            return await CategoryRepository.get_all(session, is_highlighted=is_highlighted, is_visible=is_visible)
        except SQLAlchemyError as e:
            logger.error(f"[Category] fetch_categories failed: {e}")
            raise CategoryFetchException(str(e)) from e

    @staticmethod
    async def get_categories(session: AsyncSession,
                             active_only: bool = False,
                             parent_id: int | None = None,
                             include_children: bool = False,
                             max_depth: int | None = None,
                             roots_only: bool = False) -> list[CategoryDTO]:
        """
        Storefront category listing.

        Args:
            session: Database session
            active_only: Only categories that are both active and visible
            parent_id: Direct children of this category
            include_children: Return nested trees instead of a flat list
            max_depth: Nesting limit for include_children (default CATEGORY_TREE_MAX_DEPTH)
            roots_only: Only top-level categories (ignored when parent_id is given)

        Returns:
            CategoryDTO list; serialize with to_client() for camelCase output
        """
        max_depth = max_depth if max_depth is not None else config.CATEGORY_TREE_MAX_DEPTH
        flags = {'is_active': True, 'is_visible': True} if active_only else {}
        try:
            if not include_children:
                return await CategoryRepository.get_all(session, parent_id=parent_id,
                                                        roots_only=roots_only, **flags)
            categories = await CategoryRepository.get_all(session, **flags)
        except SQLAlchemyError as e:
            logger.error(f"[Category] get_categories failed: {e}")
            raise CategoryFetchException(str(e)) from e

        forest = build_category_tree(categories)
        if parent_id is not None:
            parent = next((node for node in flatten_tree(forest) if node.id == parent_id), None)
            forest = parent.children if parent is not None else []
        return limit_depth(forest, max_depth)

    @staticmethod
    async def fetch_category_tree(session: AsyncSession, active_only: bool = True) -> list[CategoryDTO]:
        return await CategoryService.get_categories(session, active_only=active_only, include_children=True)

    @staticmethod
    async def fetch_highlighted_categories(session: AsyncSession, limit: int | None = None) -> list[CategoryDTO]:
        try:
            return await CategoryRepository.get_highlighted(session, visible_only=True, limit=limit)
        except SQLAlchemyError as e:
            logger.error(f"[Category] fetch_highlighted_categories failed: {e}")
            raise CategoryFetchException(str(e)) from e

    @staticmethod
    async def get_category(category_id: int, session: AsyncSession) -> CategoryDTO:
        try:
            category = await CategoryRepository.get_by_id(category_id, session)
        except SQLAlchemyError as e:
            raise CategoryFetchException(str(e)) from e
        if category is None:
            raise CategoryNotFoundException(category_id=category_id)
        return category

    @staticmethod
    async def get_category_by_slug(slug: str, session: AsyncSession, with_children: bool = False) -> CategoryDTO:
        try:
            category = await CategoryRepository.get_by_slug(slug, session)
        except SQLAlchemyError as e:
            raise CategoryFetchException(str(e)) from e
        if category is None or not (category.is_active and category.is_visible):
            raise CategoryNotFoundException(slug=slug)
        if with_children:
            subtree = find_category_by_slug(await CategoryService.fetch_category_tree(session), slug)
            category.children = subtree.children if subtree is not None else []
        return category

    @staticmethod
    async def _unique_slug(base_slug: str, session: AsyncSession, exclude_id: int | None = None) -> str:
        if not base_slug:
            base_slug = "category"
        slug = base_slug
        suffix = 2
        while await CategoryRepository.slug_exists(slug, session, exclude_id=exclude_id):
            slug = f"{base_slug}-{suffix}"
            suffix += 1
        return slug

    @staticmethod
    async def create_category(category_dto: CategoryCreateDTO, session: AsyncSession) -> CategoryDTO:
        if category_dto.parent_id is not None:
            await CategoryService.get_category(category_dto.parent_id, session)
        try:
            slug = await CategoryService._unique_slug(slugify(category_dto.slug or category_dto.name), session)
            created = await CategoryRepository.create(
                CategoryDTO(**category_dto.model_dump(exclude={'slug'}), slug=slug), session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"[Category] create failed for '{category_dto.name}': {e}")
            raise CategoryWriteException("create", str(e)) from e
        logger.info(f"[Category] Created category {created.id} ('{created.slug}')")
        return created

    @staticmethod
    async def update_category(category_id: int, category_dto: CategoryUpdateDTO,
                              session: AsyncSession) -> CategoryDTO:
        """
        Partial update. An explicit slug wins; otherwise the slug follows a
        name change. Moving a category under one of its own descendants is
        rejected with CategoryCycleException.
        """
        existing = await CategoryService.get_category(category_id, session)
        values = category_dto.model_dump(exclude_unset=True)

        if 'parent_id' in values and values['parent_id'] is not None:
            new_parent_id = values['parent_id']
            await CategoryService.get_category(new_parent_id, session)
            parent_map = await CategoryRepository.get_parent_map(session)
            if would_create_cycle(category_id, new_parent_id, parent_map):
                raise CategoryCycleException(category_id, new_parent_id)

        if values.get('slug'):
            values['slug'] = await CategoryService._unique_slug(slugify(values['slug']), session,
                                                                exclude_id=category_id)
        elif values.get('name') and values['name'] != existing.name:
            values['slug'] = await CategoryService._unique_slug(slugify(values['name']), session,
                                                                exclude_id=category_id)
        else:
            values.pop('slug', None)

        if not values:
            return existing
        try:
            updated = await CategoryRepository.update(category_id, values, session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"[Category] update failed for {category_id}: {e}")
            raise CategoryWriteException("update", str(e)) from e
        if updated is None:
            raise CategoryNotFoundException(category_id=category_id)
        return updated

    @staticmethod
    async def delete_category(category_id: int, session: AsyncSession) -> None:
        """Delete a category; its direct children move to the top level."""
        try:
            deleted = await CategoryRepository.delete(category_id, session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            raise CategoryWriteException("delete", str(e)) from e
        if not deleted:
            raise CategoryNotFoundException(category_id=category_id)
        logger.info(f"[Category] Deleted category {category_id}")

    @staticmethod
    async def update_positions(updates: list[CategoryPositionDTO], session: AsyncSession) -> int:
        """Apply a reorder in one transaction. Returns how many rows changed."""
        changed = 0
        try:
            for position_update in updates:
                changed += await CategoryRepository.update_position(
                    position_update.id, position_update.position, position_update.sort_order, session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            raise CategoryWriteException("reorder", str(e)) from e
        return changed

    @staticmethod
    async def update_highlight_status(category_ids: list[int], is_highlighted: bool,
                                      session: AsyncSession) -> int:
        """
        Turn highlighting on or off for several categories.

        Un-highlighting always clears highlight_priority so a later
        re-highlight starts without a stale rank.
        """
        if not category_ids:
            return 0
        try:
            changed = await CategoryRepository.set_highlight_status(category_ids, is_highlighted, session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            raise CategoryWriteException("update highlight status of", str(e)) from e
        logger.info(f"[Category] Highlight={is_highlighted} for {changed} categories")
        return changed

    @staticmethod
    async def update_highlight_priority(category_id: int, priority: int, session: AsyncSession) -> bool:
        """
        Set the homepage rank of a highlighted category (lower = earlier).

        Returns:
            False when the category is not highlighted (nothing written)
        """
        if priority < 0:
            raise InvalidHighlightPriorityException(priority)
        try:
            changed = await CategoryRepository.set_highlight_priority(category_id, priority, session)
            await session_commit(session)
        except SQLAlchemyError as e:
            await session.rollback()
            raise CategoryWriteException("update highlight priority of", str(e)) from e
        return changed > 0

    @staticmethod
    async def toggle_visibility(category_id: int, session: AsyncSession) -> CategoryDTO:
        category = await CategoryService.get_category(category_id, session)
        return await CategoryService.update_category(
            category_id, CategoryUpdateDTO(is_visible=not category.is_visible), session)
