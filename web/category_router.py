from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.category import CategoryService
from web.dependencies import get_session

category_router = APIRouter(prefix="/api/categories", tags=["categories"])


@category_router.get("")
async def list_categories(active_only: bool = Query(default=True, alias="activeOnly"),
                          parent_id: int | None = Query(default=None, alias="parentId"),
                          include_children: bool = Query(default=False, alias="includeChildren"),
                          highlighted: bool | None = Query(default=None),
                          max_depth: int | None = Query(default=None, alias="maxDepth", ge=1),
                          session: AsyncSession = Depends(get_session)):
    if highlighted:
        categories = await CategoryService.fetch_highlighted_categories(session)
    else:
        categories = await CategoryService.get_categories(session, active_only=active_only, parent_id=parent_id,
                                                          include_children=include_children, max_depth=max_depth)
    return {'categories': [category.to_client() for category in categories]}


@category_router.get("/tree")
async def category_tree(session: AsyncSession = Depends(get_session)):
    tree = await CategoryService.fetch_category_tree(session)
    return {'categories': [category.to_client() for category in tree]}


@category_router.get("/highlighted")
async def highlighted_categories(limit: int | None = Query(default=None, ge=1, le=50),
                                 session: AsyncSession = Depends(get_session)):
    categories = await CategoryService.fetch_highlighted_categories(session, limit=limit)
    return {'categories': [category.to_client() for category in categories]}


@category_router.get("/{slug}")
async def category_by_slug(slug: str,
                           with_children: bool = Query(default=True, alias="withChildren"),
                           session: AsyncSession = Depends(get_session)):
    category = await CategoryService.get_category_by_slug(slug, session, with_children=with_children)
    return category.to_client()
