"""
Unit Tests: CartService

Tests for services/cart.py covering:
- get_or_create_cart() for users and anonymous visitors
- add_to_cart() with stock validation and server-side price snapshots
- update_quantity() / remove_item() / clear_cart()
- merge_anonymous_cart() after login
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError

from enums.cart import CartStatus
from exceptions.cart import (
    CartItemNotFoundException,
    CartNotFoundException,
    CartOwnerMissingException,
    InsufficientStockException,
    InvalidCartQuantityException,
)
from exceptions.product import ProductNotFoundException
from models.product import ProductUpdateDTO, ProductVariantDTO
from repositories.cart import CartRepository
from services.cart import CartService
from services.product import ProductService


class TestCartOwnership:

    @pytest.mark.asyncio
    async def test_owner_required(self):
        with pytest.raises(CartOwnerMissingException):
            await CartService.get_or_create_cart(AsyncMock())

    @pytest.mark.asyncio
    async def test_same_owner_gets_same_cart(self, test_session):
        first = await CartService.get_or_create_cart(test_session, anonymous_id="anon-1")
        second = await CartService.get_or_create_cart(test_session, anonymous_id="anon-1")
        other = await CartService.get_or_create_cart(test_session, user_id="user-1")

        assert first.id == second.id
        assert other.id != first.id

    @pytest.mark.asyncio
    async def test_unknown_cart_raises(self, test_session):
        with pytest.raises(CartNotFoundException):
            await CartService.get_cart(test_session, 999)


class TestAddToCart:

    @pytest.mark.asyncio
    async def test_add_snapshots_price(self, test_session, make_product):
        product = await make_product(retail_price=12.5, stock=5)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")

        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 2)

        assert summary.item_count == 2
        assert summary.subtotal == 25.0
        assert summary.items[0].price == 12.5
        assert summary.items[0].product_name == product.name

        # A later catalogue price change does not touch the line already in the cart
        await ProductService.update_product(product.id, ProductUpdateDTO(retail_price=99.0), test_session)
        summary = await CartService.get_cart(test_session, cart.id)
        assert summary.items[0].price == 12.5

    @pytest.mark.asyncio
    async def test_adding_same_product_increments_line(self, test_session, make_product):
        product = await make_product(stock=5)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")

        await CartService.add_to_cart(test_session, cart.id, product.id, 1)
        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 2)

        assert len(summary.items) == 1
        assert summary.items[0].quantity == 3

    @pytest.mark.asyncio
    async def test_stock_counts_existing_line(self, test_session, make_product):
        product = await make_product(stock=3)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        await CartService.add_to_cart(test_session, cart.id, product.id, 2)

        with pytest.raises(InsufficientStockException) as exc_info:
            await CartService.add_to_cart(test_session, cart.id, product.id, 2)

        assert exc_info.value.requested == 4
        assert exc_info.value.available == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_non_positive_quantity_rejected(self, test_session, quantity):
        with pytest.raises(InvalidCartQuantityException):
            await CartService.add_to_cart(test_session, 1, 1, quantity)

    @pytest.mark.asyncio
    async def test_inactive_product_rejected(self, test_session, make_product):
        product = await make_product(is_active=False)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")

        with pytest.raises(ProductNotFoundException):
            await CartService.add_to_cart(test_session, cart.id, product.id, 1)

    @pytest.mark.asyncio
    async def test_variant_without_price_inherits_retail_price(self, test_session, make_product):
        product = await make_product(retail_price=20.0, stock=1)
        variant = await ProductService.add_variant(product.id, ProductVariantDTO(name="XL", stock=4), test_session)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")

        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 3, variant_id=variant.id)

        assert summary.items[0].variant_id == variant.id
        assert summary.items[0].price == 20.0


class TestUpdateAndRemove:

    @pytest.mark.asyncio
    async def test_update_quantity(self, test_session, make_product):
        product = await make_product(stock=10)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 1)

        summary = await CartService.update_quantity(test_session, cart.id, summary.items[0].id, 7)

        assert summary.items[0].quantity == 7

    @pytest.mark.asyncio
    async def test_update_to_zero_removes_line(self, test_session, make_product):
        product = await make_product()
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 1)

        summary = await CartService.update_quantity(test_session, cart.id, summary.items[0].id, 0)

        assert summary.items == []

    @pytest.mark.asyncio
    async def test_update_above_stock_rejected(self, test_session, make_product):
        product = await make_product(stock=2)
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        summary = await CartService.add_to_cart(test_session, cart.id, product.id, 1)

        with pytest.raises(InsufficientStockException):
            await CartService.update_quantity(test_session, cart.id, summary.items[0].id, 3)

    @pytest.mark.asyncio
    async def test_update_unknown_item_raises(self, test_session):
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")

        with pytest.raises(CartItemNotFoundException):
            await CartService.update_quantity(test_session, cart.id, 12345, 2)

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, test_session, make_product):
        product = await make_product()
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        item_id = (await CartService.add_to_cart(test_session, cart.id, product.id, 1)).items[0].id

        first = await CartService.remove_item(test_session, cart.id, item_id)
        second = await CartService.remove_item(test_session, cart.id, item_id)

        assert first.items == []
        assert second.items == []

    @pytest.mark.asyncio
    async def test_remove_retries_locked_database(self, test_session, make_product):
        product = await make_product()
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        item_id = (await CartService.add_to_cart(test_session, cart.id, product.id, 1)).items[0].id

        locked = OperationalError("DELETE", {}, Exception("database is locked"))
        delete = AsyncMock(side_effect=[locked, 1])
        with patch('services.cart.CartItemRepository.delete', delete):
            await CartService.remove_item(test_session, cart.id, item_id)

        assert delete.await_count == 2

    @pytest.mark.asyncio
    async def test_clear_cart(self, test_session, make_product):
        cart = await CartService.get_or_create_cart(test_session, user_id="user-1")
        for _ in range(3):
            product = await make_product()
            await CartService.add_to_cart(test_session, cart.id, product.id, 1)

        summary = await CartService.clear_cart(test_session, cart.id)

        assert summary.items == []
        assert summary.subtotal == 0.0


class TestMergeAnonymousCart:

    @pytest.mark.asyncio
    async def test_lines_summed_into_user_cart(self, test_session, make_product):
        shared = await make_product(retail_price=5.0)
        only_anonymous = await make_product(retail_price=7.0)
        anonymous = await CartService.get_or_create_cart(test_session, anonymous_id="anon-1")
        user = await CartService.get_or_create_cart(test_session, user_id="user-1")
        await CartService.add_to_cart(test_session, anonymous.id, shared.id, 2)
        await CartService.add_to_cart(test_session, anonymous.id, only_anonymous.id, 1)
        await CartService.add_to_cart(test_session, user.id, shared.id, 1)

        summary = await CartService.merge_anonymous_cart(test_session, "anon-1", "user-1")

        quantities = {item.product_id: item.quantity for item in summary.items}
        assert summary.cart_id == user.id
        assert quantities == {shared.id: 3, only_anonymous.id: 1}
        merged = await CartRepository.get_by_id(anonymous.id, test_session)
        assert merged.status == CartStatus.MERGED

    @pytest.mark.asyncio
    async def test_repeating_merge_is_noop(self, test_session, make_product):
        product = await make_product()
        anonymous = await CartService.get_or_create_cart(test_session, anonymous_id="anon-1")
        await CartService.add_to_cart(test_session, anonymous.id, product.id, 2)

        await CartService.merge_anonymous_cart(test_session, "anon-1", "user-1")
        summary = await CartService.merge_anonymous_cart(test_session, "anon-1", "user-1")

        assert summary.items[0].quantity == 2

    @pytest.mark.asyncio
    async def test_merge_requires_both_ids(self, test_session):
        with pytest.raises(CartOwnerMissingException):
            await CartService.merge_anonymous_cart(test_session, "", "user-1")
