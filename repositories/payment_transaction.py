from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.payment_status import PaymentStatus
from models.payment_transaction import PaymentTransaction, PaymentTransactionDTO


class PaymentTransactionRepository:

    @staticmethod
    async def create(transaction_dto: PaymentTransactionDTO, session: AsyncSession) -> PaymentTransactionDTO:
        transaction = PaymentTransaction(**transaction_dto.model_dump(exclude={'id', 'created_at', 'updated_at'}))
        session.add(transaction)
        await session_flush(session)
        return PaymentTransactionDTO.model_validate(transaction, from_attributes=True)

    @staticmethod
    async def _find(reference: str, session: AsyncSession) -> PaymentTransaction | None:
        stmt = (select(PaymentTransaction)
                .where(or_(PaymentTransaction.payment_intent_id == reference,
                           PaymentTransaction.payment_id == reference))
                .order_by(PaymentTransaction.id.desc())
                .limit(1))
        transaction = await session_execute(stmt, session)
        return transaction.scalar_one_or_none()

    @staticmethod
    async def get_by_reference(reference: str, session: AsyncSession) -> PaymentTransactionDTO | None:
        """Look up by payment intent id or payment id, whichever the caller holds."""
        transaction = await PaymentTransactionRepository._find(reference, session)
        if transaction is None:
            return None
        return PaymentTransactionDTO.model_validate(transaction, from_attributes=True)

    @staticmethod
    async def update_status(reference: str, status: PaymentStatus, session: AsyncSession,
                            payment_id: str | None = None, error: str | None = None,
                            refunded_amount: float | None = None) -> PaymentTransactionDTO | None:
        transaction = await PaymentTransactionRepository._find(reference, session)
        if transaction is None:
            return None
        transaction.status = status
        if payment_id:
            transaction.payment_id = payment_id
        if error is not None:
            transaction.error = error
        if refunded_amount is not None:
            transaction.refunded_amount = refunded_amount
        await session_flush(session)
        return PaymentTransactionDTO.model_validate(transaction, from_attributes=True)
