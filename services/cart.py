import logging

from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit
from enums.cart import CartStatus
from exceptions.cart import (
    CartNotFoundException,
    CartItemNotFoundException,
    InvalidCartQuantityException,
    InsufficientStockException,
    CartOwnerMissingException
)
from exceptions.product import ProductNotFoundException
from models.cart import CartDTO, CartSummaryDTO
from models.cartItem import CartItemDTO
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.product import ProductRepository
from utils.retry import db_write_retry

logger = logging.getLogger(__name__)


class CartService:

    @staticmethod
    async def get_or_create_cart(session: AsyncSession, user_id: str | None = None,
                                 anonymous_id: str | None = None) -> CartDTO:
        if not user_id and not anonymous_id:
            raise CartOwnerMissingException()
        cart = await CartRepository.get_or_create(session, user_id=user_id, anonymous_id=anonymous_id)
        await session_commit(session)
        return cart

    @staticmethod
    async def _require_cart(cart_id: int, session: AsyncSession) -> CartDTO:
        cart = await CartRepository.get_by_id(cart_id, session)
        if cart is None:
            raise CartNotFoundException(cart_id)
        return cart

    @staticmethod
    async def get_cart(session: AsyncSession, cart_id: int) -> CartSummaryDTO:
        await CartService._require_cart(cart_id, session)
        items = await CartItemRepository.get_by_cart_id(cart_id, session)
        return CartSummaryDTO(
            cart_id=cart_id,
            items=items,
            item_count=sum(item.quantity for item in items),
            subtotal=round(sum(item.line_total for item in items), 2),
        )

    @staticmethod
    async def _price_and_stock(product_id: int, variant_id: int | None,
                               session: AsyncSession) -> tuple[float, int]:
        """
        Unit price and available stock for a product line. A variant without
        its own price inherits the product retail price.
        """
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None or not product.is_active:
            raise ProductNotFoundException(product_id=product_id)
        if variant_id is None:
            return product.retail_price, product.stock
        variant = await ProductRepository.get_variant(variant_id, session)
        if variant is None or variant.product_id != product_id or not variant.is_active:
            raise ProductNotFoundException(product_id=product_id)
        price = variant.price if variant.price is not None else product.retail_price
        return price, variant.stock

    @staticmethod
    async def add_to_cart(session: AsyncSession, cart_id: int, product_id: int, quantity: int,
                          variant_id: int | None = None) -> CartSummaryDTO:
        """
        Add a product line, or increase the quantity of the matching line.

        The unit price is snapshotted from the catalogue here; the client
        never supplies it.

        Raises:
            InvalidCartQuantityException: quantity <= 0
            ProductNotFoundException: product/variant missing or inactive
            InsufficientStockException: cart quantity would exceed stock
        """
        if quantity <= 0:
            raise InvalidCartQuantityException(quantity)
        await CartService._require_cart(cart_id, session)
        price, stock = await CartService._price_and_stock(product_id, variant_id, session)

        line = await CartItemRepository.get_line(cart_id, product_id, variant_id, session)
        new_quantity = quantity + (line.quantity if line is not None else 0)
        if new_quantity > stock:
            raise InsufficientStockException(product_id, new_quantity, stock)

        if line is not None:
            await CartItemRepository.set_quantity(line.id, new_quantity, session)
        else:
            await CartItemRepository.create(CartItemDTO(
                cart_id=cart_id,
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                price=price,
            ), session)
        await session_commit(session)
        logger.info(f"[Cart] Cart {cart_id}: product {product_id} x{quantity} (line total qty {new_quantity})")
        return await CartService.get_cart(session, cart_id)

    @staticmethod
    async def check_availability(session: AsyncSession, cart_id: int) -> CartSummaryDTO:
        """
        Re-check every line against the catalogue before checkout.

        Raises:
            ProductNotFoundException: a product/variant was removed or deactivated
            InsufficientStockException: stock dropped below a line quantity
        """
        summary = await CartService.get_cart(session, cart_id)
        for item in summary.items:
            _, stock = await CartService._price_and_stock(item.product_id, item.variant_id, session)
            if item.quantity > stock:
                raise InsufficientStockException(item.product_id, item.quantity, stock)
        return summary

    @staticmethod
    async def mark_checked_out(session: AsyncSession, cart_id: int) -> None:
        await CartRepository.set_status(cart_id, CartStatus.CHECKED_OUT, session)

    @staticmethod
    async def update_quantity(session: AsyncSession, cart_id: int, item_id: int,
                              quantity: int) -> CartSummaryDTO:
        if quantity < 0:
            raise InvalidCartQuantityException(quantity)
        if quantity == 0:
            return await CartService.remove_item(session, cart_id, item_id)

        item = await CartItemRepository.get_by_id(item_id, cart_id, session)
        if item is None:
            raise CartItemNotFoundException(item_id)
        _, stock = await CartService._price_and_stock(item.product_id, item.variant_id, session)
        if quantity > stock:
            raise InsufficientStockException(item.product_id, quantity, stock)
        await CartItemRepository.set_quantity(item_id, quantity, session)
        await session_commit(session)
        return await CartService.get_cart(session, cart_id)

    @staticmethod
    async def remove_item(session: AsyncSession, cart_id: int, item_id: int) -> CartSummaryDTO:
        """
        Remove one line. Removing a line that is already gone succeeds, so a
        client may safely repeat the request.
        """
        await CartService._require_cart(cart_id, session)

        @db_write_retry()
        async def _delete() -> int:
            try:
                removed = await CartItemRepository.delete(item_id, cart_id, session)
                await session_commit(session)
                return removed
            except Exception:
                await session.rollback()
                raise

        removed = await _delete()
        if removed:
            logger.info(f"[Cart] Removed item {item_id} from cart {cart_id}")
        else:
            logger.info(f"[Cart] Item {item_id} already absent from cart {cart_id}")
        return await CartService.get_cart(session, cart_id)

    @staticmethod
    async def clear_cart(session: AsyncSession, cart_id: int) -> CartSummaryDTO:
        await CartService._require_cart(cart_id, session)
        removed = await CartItemRepository.delete_all(cart_id, session)
        await session_commit(session)
        logger.info(f"[Cart] Cleared cart {cart_id} ({removed} lines)")
        return await CartService.get_cart(session, cart_id)

    @staticmethod
    async def merge_anonymous_cart(session: AsyncSession, anonymous_id: str, user_id: str) -> CartSummaryDTO:
        """
        Move the anonymous cart's lines into the user's cart after login.

        Lines for the same product/variant are summed. The anonymous cart is
        kept with status MERGED so repeating the merge is a no-op.
        """
        if not user_id or not anonymous_id:
            raise CartOwnerMissingException()
        user_cart = await CartRepository.get_or_create(session, user_id=user_id)
        anonymous_cart = await CartRepository.get_active(session, anonymous_id=anonymous_id)
        if anonymous_cart is None:
            await session_commit(session)
            return await CartService.get_cart(session, user_cart.id)

        merged_lines = 0
        for item in await CartItemRepository.get_by_cart_id(anonymous_cart.id, session):
            line = await CartItemRepository.get_line(user_cart.id, item.product_id, item.variant_id, session)
            if line is not None:
                await CartItemRepository.set_quantity(line.id, line.quantity + item.quantity, session)
            else:
                await CartItemRepository.create(item.model_copy(update={'id': None, 'cart_id': user_cart.id}),
                                                session)
            merged_lines += 1
        await CartRepository.set_status(anonymous_cart.id, CartStatus.MERGED, session)
        await session_commit(session)
        logger.info(f"[Cart] Merged {merged_lines} lines from anonymous cart {anonymous_cart.id} "
                    f"into cart {user_cart.id}")
        return await CartService.get_cart(session, user_cart.id)
