from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.cart import CartAction
from exceptions.cart import CartOwnerMissingException
from models.base import CamelModel
from services.cart import CartService
from web.dependencies import get_session, get_cart_owner, CartOwner

cart_router = APIRouter(prefix="/api/cart", tags=["cart"])


class CartActionPayload(CamelModel):
    action: CartAction
    product_id: int | None = Field(default=None, gt=0)
    variant_id: int | None = Field(default=None, gt=0)
    item_id: int | None = Field(default=None, gt=0)
    quantity: int | None = None


def _require(value, field: str):
    if value is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"'{field}' is required")
    return value


@cart_router.get("")
async def get_cart(owner: CartOwner = Depends(get_cart_owner), session: AsyncSession = Depends(get_session)):
    cart = await CartService.get_or_create_cart(session, user_id=owner.user_id, anonymous_id=owner.anonymous_id)
    summary = await CartService.get_cart(session, cart.id)
    return summary.to_client()


@cart_router.post("")
async def cart_action(payload: CartActionPayload,
                      owner: CartOwner = Depends(get_cart_owner),
                      session: AsyncSession = Depends(get_session)):
    cart = await CartService.get_or_create_cart(session, user_id=owner.user_id, anonymous_id=owner.anonymous_id)

    match payload.action:
        case CartAction.ADD:
            summary = await CartService.add_to_cart(session, cart.id, _require(payload.product_id, "productId"),
                                                    payload.quantity if payload.quantity is not None else 1,
                                                    variant_id=payload.variant_id)
        case CartAction.UPDATE:
            summary = await CartService.update_quantity(session, cart.id, _require(payload.item_id, "itemId"),
                                                        _require(payload.quantity, "quantity"))
        case CartAction.REMOVE:
            summary = await CartService.remove_item(session, cart.id, _require(payload.item_id, "itemId"))
        case CartAction.CLEAR:
            summary = await CartService.clear_cart(session, cart.id)

    return summary.to_client()


@cart_router.post("/merge")
async def merge_cart(request: Request, owner: CartOwner = Depends(get_cart_owner),
                     session: AsyncSession = Depends(get_session)):
    """
    Called right after login: folds the browser's anonymous cart into the
    signed-in customer's cart.
    """
    anonymous_id = request.cookies.get(config.CART_COOKIE_NAME)
    if not owner.user_id:
        raise CartOwnerMissingException()
    if not anonymous_id:
        cart = await CartService.get_or_create_cart(session, user_id=owner.user_id)
        summary = await CartService.get_cart(session, cart.id)
        return summary.to_client()
    summary = await CartService.merge_anonymous_cart(session, anonymous_id, owner.user_id)
    return summary.to_client()
