import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit
from enums.payment_status import PaymentStatus
from exceptions.payment import (
    PaymentProviderNotFoundException,
    PaymentProviderInitializationException,
    PaymentTransactionNotFoundException
)
from models.payment import (
    PaymentAmount,
    PaymentOptions,
    PaymentInfo,
    PaymentCharge,
    PaymentIntentResult,
    PaymentResult,
    PaymentCancelResult,
    PaymentRefundResult
)
from models.payment_transaction import PaymentTransactionDTO
from payment.provider import PaymentProviderInterface
from repositories.payment_transaction import PaymentTransactionRepository
from services.order import OrderService

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Registry of payment adapters and facade over them.

    One instance is built at startup and shared through app.state. Every
    operation resolves its adapter in the same order: explicit provider id,
    then the provider named in the payment info, then the active provider,
    then the default provider.

    When a session is passed, the facade also keeps the local
    PaymentTransaction record in step with the adapter's answer. The order
    paid by that transaction follows through OrderService.sync_from_transaction.
    """

    def __init__(self, default_provider: str = "mock"):
        self._providers: dict[str, PaymentProviderInterface] = {}
        self._active: PaymentProviderInterface | None = None
        self._default_provider = default_provider

    def register_provider(self, provider: PaymentProviderInterface) -> None:
        if provider.provider in self._providers:
            logger.info(f"[Payment] Replacing registered provider '{provider.provider}'")
        self._providers[provider.provider] = provider

    async def set_active_provider(self, provider_id: str, provider_config: dict[str, Any] | None = None) -> bool:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise PaymentProviderNotFoundException(provider_id, list(self._providers))
        if provider_config is not None:
            if not await provider.initialize(provider_config):
                raise PaymentProviderInitializationException(provider_id)
        self._active = provider
        logger.info(f"[Payment] Active provider set to '{provider_id}'")
        return True

    def set_default_provider(self, provider_id: str) -> None:
        if provider_id not in self._providers:
            raise PaymentProviderNotFoundException(provider_id, list(self._providers))
        self._default_provider = provider_id

    def get_provider(self, provider_id: str) -> PaymentProviderInterface | None:
        return self._providers.get(provider_id)

    def get_available_providers(self) -> list[dict[str, str]]:
        return [{'id': provider.provider, 'name': provider.display_name}
                for provider in self._providers.values()]

    @property
    def active_provider_id(self) -> str | None:
        current = self._active or self._providers.get(self._default_provider)
        return current.provider if current else None

    @property
    def default_provider_id(self) -> str:
        return self._default_provider

    def _resolve(self, provider_id: str | None = None,
                 payment_info: PaymentInfo | None = None) -> PaymentProviderInterface:
        requested = provider_id or (payment_info.provider if payment_info else None)
        if requested:
            provider = self._providers.get(requested)
            if provider is None:
                raise PaymentProviderNotFoundException(requested, list(self._providers))
            return provider
        if self._active is not None:
            return self._active
        provider = self._providers.get(self._default_provider)
        if provider is None:
            raise PaymentProviderNotFoundException(None, list(self._providers))
        return provider

    async def create_payment(self, amount: PaymentAmount, options: PaymentOptions | None = None,
                             provider_id: str | None = None,
                             session: AsyncSession | None = None) -> PaymentIntentResult:
        provider = self._resolve(provider_id)
        result = await provider.create_payment(amount, options)
        result.provider = provider.provider
        if result.success:
            logger.info(f"[Payment] Intent {result.payment_intent_id} created via {provider.provider} "
                        f"({amount.total:.2f} {amount.currency})")
            if session is not None:
                await PaymentTransactionRepository.create(PaymentTransactionDTO(
                    provider=provider.provider,
                    payment_intent_id=result.payment_intent_id,
                    order_reference=options.order_reference if options else None,
                    amount=amount.total,
                    currency=amount.currency.upper(),
                    status=PaymentStatus.PENDING,
                ), session)
                await session_commit(session)
        else:
            logger.warning(f"[Payment] Intent creation via {provider.provider} failed: {result.error}")
        return result

    async def process_payment(self, payment_intent_id: str, payment_info: PaymentInfo,
                              provider_id: str | None = None,
                              session: AsyncSession | None = None) -> PaymentResult:
        transaction = None
        if session is not None:
            transaction = await PaymentTransactionRepository.get_by_reference(payment_intent_id, session)
        # The provider that issued the intent handles it, unless the caller names one
        if provider_id is None and payment_info.provider is None and transaction is not None:
            provider_id = transaction.provider
        provider = self._resolve(provider_id, payment_info)

        charge = None
        if transaction is not None:
            charge = PaymentCharge(amount=transaction.amount, currency=transaction.currency,
                                   order_reference=transaction.order_reference)
        payment_info = payment_info.model_copy(update={'provider': provider.provider})

        result = await provider.process_payment(payment_intent_id, payment_info, charge)
        logger.info(f"[Payment] Process {payment_intent_id} via {provider.provider}: {result.status.value}")
        if session is not None and transaction is not None:
            updated = await PaymentTransactionRepository.update_status(payment_intent_id, result.status, session,
                                                                       payment_id=result.payment_id,
                                                                       error=result.error)
            await session_commit(session)
            await OrderService.sync_from_transaction(session, updated)
        return result

    async def verify_payment(self, payment_id: str, provider_id: str | None = None,
                             session: AsyncSession | None = None) -> PaymentResult:
        provider_id = provider_id or await self._stored_provider(payment_id, session)
        provider = self._resolve(provider_id)
        result = await provider.verify_payment(payment_id)
        if session is not None and result.success:
            updated = await PaymentTransactionRepository.update_status(payment_id, result.status, session)
            if updated is not None:
                await session_commit(session)
                await OrderService.sync_from_transaction(session, updated)
        return result

    async def cancel_payment(self, payment_id: str, provider_id: str | None = None,
                             session: AsyncSession | None = None) -> PaymentCancelResult:
        provider_id = provider_id or await self._stored_provider(payment_id, session)
        provider = self._resolve(provider_id)
        result = await provider.cancel_payment(payment_id)
        if session is not None and result.success:
            updated = await PaymentTransactionRepository.update_status(payment_id, PaymentStatus.CANCELLED, session)
            if updated is not None:
                await session_commit(session)
                await OrderService.sync_from_transaction(session, updated)
        logger.info(f"[Payment] Cancel {payment_id} via {provider.provider}: success={result.success}")
        return result

    async def refund_payment(self, payment_id: str, amount: float | None = None, provider_id: str | None = None,
                             session: AsyncSession | None = None) -> PaymentRefundResult:
        provider_id = provider_id or await self._stored_provider(payment_id, session)
        provider = self._resolve(provider_id)
        result = await provider.refund_payment(payment_id, amount)
        logger.info(f"[Payment] Refund {payment_id} via {provider.provider}: success={result.success}")
        if session is not None and result.success:
            transaction = await PaymentTransactionRepository.get_by_reference(payment_id, session)
            if transaction is not None:
                refunded = round(transaction.refunded_amount + (result.amount or transaction.amount), 2)
                status = PaymentStatus.REFUNDED if refunded >= transaction.amount else transaction.status
                updated = await PaymentTransactionRepository.update_status(payment_id, status, session,
                                                                           refunded_amount=refunded)
                await session_commit(session)
                await OrderService.sync_from_transaction(session, updated)
        return result

    def get_client_config(self, provider_id: str | None = None) -> dict[str, Any]:
        provider = self._resolve(provider_id)
        return {**provider.get_client_config(), 'provider': provider.provider}

    async def find_transaction(self, payment_id: str, session: AsyncSession) -> PaymentTransactionDTO | None:
        return await PaymentTransactionRepository.get_by_reference(payment_id, session)

    async def get_transaction(self, payment_id: str, session: AsyncSession) -> PaymentTransactionDTO:
        transaction = await PaymentTransactionRepository.get_by_reference(payment_id, session)
        if transaction is None:
            raise PaymentTransactionNotFoundException(payment_id)
        return transaction

    @staticmethod
    async def _stored_provider(payment_id: str, session: AsyncSession | None) -> str | None:
        if session is None:
            return None
        transaction = await PaymentTransactionRepository.get_by_reference(payment_id, session)
        return transaction.provider if transaction else None
