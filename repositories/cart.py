from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.cart import CartStatus
from models.cart import Cart, CartDTO


class CartRepository:
    @staticmethod
    async def get_by_id(cart_id: int, session: AsyncSession) -> CartDTO | None:
        stmt = select(Cart).where(Cart.id == cart_id)
        cart = await session_execute(stmt, session)
        cart = cart.scalar_one_or_none()
        if cart is None:
            return None
        return CartDTO.model_validate(cart, from_attributes=True)

    @staticmethod
    async def get_active(session: AsyncSession, user_id: str | None = None,
                         anonymous_id: str | None = None) -> CartDTO | None:
        stmt = select(Cart).where(Cart.status == CartStatus.ACTIVE)
        if user_id is not None:
            stmt = stmt.where(Cart.user_id == user_id)
        else:
            stmt = stmt.where(Cart.anonymous_id == anonymous_id, Cart.user_id.is_(None))
        stmt = stmt.order_by(Cart.id.desc()).limit(1)
        cart = await session_execute(stmt, session)
        cart = cart.scalar_one_or_none()
        if cart is None:
            return None
        return CartDTO.model_validate(cart, from_attributes=True)

    @staticmethod
    async def get_or_create(session: AsyncSession, user_id: str | None = None,
                            anonymous_id: str | None = None) -> CartDTO:
        cart = await CartRepository.get_active(session, user_id=user_id, anonymous_id=anonymous_id)
        if cart is not None:
            return cart
        cart = Cart(user_id=user_id, anonymous_id=None if user_id else anonymous_id, status=CartStatus.ACTIVE)
        session.add(cart)
        await session_flush(session)
        return CartDTO.model_validate(cart, from_attributes=True)

    @staticmethod
    async def set_status(cart_id: int, status: CartStatus, session: AsyncSession) -> None:
        stmt = update(Cart).where(Cart.id == cart_id).values(status=status)
        await session_execute(stmt, session)
