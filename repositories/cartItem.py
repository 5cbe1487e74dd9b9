from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.cartItem import CartItem, CartItemDTO


class CartItemRepository:

    @staticmethod
    def _to_dto(cart_item: CartItem) -> CartItemDTO:
        dto = CartItemDTO.model_validate(cart_item, from_attributes=True)
        if cart_item.product is not None:
            dto.product_name = cart_item.product.name
            dto.product_sku = cart_item.product.sku
            dto.image_url = cart_item.product.image_url
        return dto

    @staticmethod
    async def get_by_cart_id(cart_id: int, session: AsyncSession) -> list[CartItemDTO]:
        stmt = (select(CartItem)
                .where(CartItem.cart_id == cart_id)
                .order_by(CartItem.id)
                .execution_options(populate_existing=True))
        cart_items = await session_execute(stmt, session)
        return [CartItemRepository._to_dto(item) for item in cart_items.unique().scalars().all()]

    @staticmethod
    async def get_by_id(cart_item_id: int, cart_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = (select(CartItem)
                .where(CartItem.id == cart_item_id, CartItem.cart_id == cart_id)
                .execution_options(populate_existing=True))
        cart_item = await session_execute(stmt, session)
        cart_item = cart_item.unique().scalar_one_or_none()
        if cart_item is None:
            return None
        return CartItemRepository._to_dto(cart_item)

    @staticmethod
    async def get_line(cart_id: int, product_id: int, variant_id: int | None,
                       session: AsyncSession) -> CartItem | None:
        stmt = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        if variant_id is None:
            stmt = stmt.where(CartItem.variant_id.is_(None))
        else:
            stmt = stmt.where(CartItem.variant_id == variant_id)
        cart_item = await session_execute(stmt, session)
        return cart_item.unique().scalar_one_or_none()

    @staticmethod
    async def create(cart_item_dto: CartItemDTO, session: AsyncSession) -> int:
        cart_item = CartItem(
            cart_id=cart_item_dto.cart_id,
            product_id=cart_item_dto.product_id,
            variant_id=cart_item_dto.variant_id,
            quantity=cart_item_dto.quantity,
            price=cart_item_dto.price,
        )
        session.add(cart_item)
        await session_flush(session)
        return cart_item.id

    @staticmethod
    async def set_quantity(cart_item_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = select(CartItem).where(CartItem.id == cart_item_id)
        cart_item = await session_execute(stmt, session)
        cart_item = cart_item.unique().scalar_one()
        cart_item.quantity = quantity
        await session_flush(session)

    @staticmethod
    async def delete(cart_item_id: int, cart_id: int, session: AsyncSession) -> int:
        stmt = delete(CartItem).where(CartItem.id == cart_item_id, CartItem.cart_id == cart_id)
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def delete_all(cart_id: int, session: AsyncSession) -> int:
        stmt = delete(CartItem).where(CartItem.cart_id == cart_id)
        result = await session_execute(stmt, session)
        return result.rowcount
