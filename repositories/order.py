from sqlalchemy import select, func, or_, Select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.order_status import OrderStatus, OrderPaymentStatus
from models.order import Order, OrderDTO, OrderItem, OrderFilters, OrderStatusHistory, OrderStatusHistoryDTO


class OrderRepository:

    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> OrderDTO:
        order = Order(
            **order_dto.model_dump(exclude={'id', 'anonymous_id', 'items', 'created_at', 'updated_at'}),
            anonymous_id=order_dto.anonymous_id,
            items=[OrderItem(**item.model_dump(exclude={'id', 'order_id'})) for item in order_dto.items],
        )
        session.add(order)
        await session_flush(session)
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def _get_model(order_id: int, session: AsyncSession) -> Order | None:
        stmt = (select(Order)
                .where(Order.id == order_id)
                .execution_options(populate_existing=True))
        order = await session_execute(stmt, session)
        return order.scalar_one_or_none()

    @staticmethod
    async def _get_one(stmt: Select, session: AsyncSession) -> OrderDTO | None:
        order = await session_execute(stmt.execution_options(populate_existing=True), session)
        order = order.scalar_one_or_none()
        if order is None:
            return None
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def get_by_id(order_id: int, session: AsyncSession) -> OrderDTO | None:
        return await OrderRepository._get_one(select(Order).where(Order.id == order_id), session)

    @staticmethod
    async def get_by_number(order_number: str, session: AsyncSession) -> OrderDTO | None:
        return await OrderRepository._get_one(select(Order).where(Order.order_number == order_number), session)

    @staticmethod
    async def get_by_payment_intent(payment_intent_id: str, session: AsyncSession) -> OrderDTO | None:
        stmt = (select(Order)
                .where(Order.payment_intent_id == payment_intent_id)
                .order_by(Order.id.desc())
                .limit(1))
        return await OrderRepository._get_one(stmt, session)

    @staticmethod
    async def number_exists(order_number: str, session: AsyncSession) -> bool:
        stmt = select(func.count(Order.id)).where(Order.order_number == order_number)
        count = await session_execute(stmt, session)
        return count.scalar_one() > 0

    @staticmethod
    def _apply_filters(stmt: Select, filters: OrderFilters) -> Select:
        if filters.status is not None:
            stmt = stmt.where(Order.status == filters.status)
        if filters.payment_status is not None:
            stmt = stmt.where(Order.payment_status == filters.payment_status)
        if filters.email:
            stmt = stmt.where(Order.email == filters.email.strip().lower())
        if filters.user_id:
            stmt = stmt.where(Order.user_id == filters.user_id)
        if filters.anonymous_id:
            stmt = stmt.where(Order.anonymous_id == filters.anonymous_id, Order.user_id.is_(None))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(or_(Order.order_number.ilike(pattern), Order.email.ilike(pattern)))
        if filters.date_from is not None:
            stmt = stmt.where(Order.created_at >= filters.date_from)
        if filters.date_to is not None:
            stmt = stmt.where(Order.created_at <= filters.date_to)
        if filters.min_total is not None:
            stmt = stmt.where(Order.total >= filters.min_total)
        if filters.max_total is not None:
            stmt = stmt.where(Order.total <= filters.max_total)
        return stmt

    @staticmethod
    async def count(filters: OrderFilters, session: AsyncSession) -> int:
        stmt = OrderRepository._apply_filters(select(func.count(Order.id)), filters)
        count = await session_execute(stmt, session)
        return count.scalar_one()

    @staticmethod
    async def get_filtered(filters: OrderFilters, limit: int, offset: int,
                           session: AsyncSession) -> list[OrderDTO]:
        stmt = OrderRepository._apply_filters(select(Order), filters)
        if filters.newest_first:
            stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        else:
            stmt = stmt.order_by(Order.created_at.asc(), Order.id.asc())
        orders = await session_execute(stmt.offset(offset).limit(limit), session)
        return [OrderDTO.model_validate(order, from_attributes=True) for order in orders.scalars().all()]

    @staticmethod
    async def update(order_id: int, session: AsyncSession, status: OrderStatus | None = None,
                     payment_status: OrderPaymentStatus | None = None, payment_intent_id: str | None = None,
                     payment_provider: str | None = None) -> OrderDTO | None:
        order = await OrderRepository._get_model(order_id, session)
        if order is None:
            return None
        if status is not None:
            order.status = status
        if payment_status is not None:
            order.payment_status = payment_status
        if payment_intent_id is not None:
            order.payment_intent_id = payment_intent_id
        if payment_provider is not None:
            order.payment_provider = payment_provider
        await session_flush(session)
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def add_history(order_id: int, status: OrderStatus, payment_status: OrderPaymentStatus,
                          note: str | None, session: AsyncSession) -> None:
        session.add(OrderStatusHistory(order_id=order_id, status=status, payment_status=payment_status, note=note))
        await session_flush(session)

    @staticmethod
    async def get_history(order_id: int, session: AsyncSession) -> list[OrderStatusHistoryDTO]:
        stmt = (select(OrderStatusHistory)
                .where(OrderStatusHistory.order_id == order_id)
                .order_by(OrderStatusHistory.id.asc()))
        history = await session_execute(stmt, session)
        return [OrderStatusHistoryDTO.model_validate(entry, from_attributes=True)
                for entry in history.scalars().all()]
