from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.order import OrderService
from web.dependencies import get_session, get_cart_owner, CartOwner

order_router = APIRouter(prefix="/api/orders", tags=["orders"])


@order_router.get("")
async def my_orders(limit: int = Query(default=20, ge=1, le=100),
                    offset: int = Query(default=0, ge=0),
                    owner: CartOwner = Depends(get_cart_owner),
                    session: AsyncSession = Depends(get_session)):
    page = await OrderService.get_user_orders(session, user_id=owner.user_id, anonymous_id=owner.anonymous_id,
                                              limit=limit, offset=offset)
    return page.to_client()


@order_router.get("/{order_number}")
async def my_order(order_number: str,
                   owner: CartOwner = Depends(get_cart_owner),
                   session: AsyncSession = Depends(get_session)):
    order = await OrderService.get_order_by_number(session, order_number, user_id=owner.user_id,
                                                   anonymous_id=owner.anonymous_id)
    return order.to_client()
