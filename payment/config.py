import logging
from typing import Any

import config
from enums.payment_provider import PaymentProviderType
from payment.mock import MockPaymentProvider
from payment.service import PaymentService
from payment.square import SquarePaymentProvider
from payment.stripe_provider import StripePaymentProvider

logger = logging.getLogger(__name__)


def get_payment_config() -> dict[str, Any]:
    """Server-side provider settings, secrets included. Never send this to a client."""
    return {
        'default_provider': config.DEFAULT_PAYMENT_PROVIDER or None,
        'currency': config.CURRENCY.value,
        'square': {
            'access_token': config.SQUARE_ACCESS_TOKEN,
            'application_id': config.SQUARE_APP_ID,
            'location_id': config.SQUARE_LOCATION_ID,
            'environment': config.SQUARE_ENVIRONMENT,
            'webhook_signature_key': config.SQUARE_WEBHOOK_SIGNATURE_KEY,
        },
        'stripe': {
            'secret_key': config.STRIPE_SECRET_KEY,
            'publishable_key': config.STRIPE_PUBLISHABLE_KEY,
            'webhook_secret': config.STRIPE_WEBHOOK_SECRET,
            'environment': config.STRIPE_ENVIRONMENT,
        },
    }


def is_square_configured(payment_config: dict[str, Any]) -> bool:
    square = payment_config.get('square') or {}
    return bool(square.get('access_token') and square.get('application_id') and square.get('location_id'))


def is_stripe_configured(payment_config: dict[str, Any]) -> bool:
    stripe_config = payment_config.get('stripe') or {}
    return bool(stripe_config.get('secret_key') and stripe_config.get('publishable_key'))


def get_client_payment_config(payment_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Public subset for the checkout page: application ids and publishable keys only."""
    payment_config = payment_config or get_payment_config()
    client_config: dict[str, Any] = {
        'defaultProvider': payment_config.get('default_provider'),
        'currency': payment_config.get('currency'),
    }
    if is_square_configured(payment_config):
        square = payment_config['square']
        client_config['square'] = {
            'applicationId': square['application_id'],
            'locationId': square['location_id'],
            'environment': square['environment'],
        }
    if is_stripe_configured(payment_config):
        client_config['stripe'] = {'publishableKey': payment_config['stripe']['publishable_key']}
    return client_config


async def initialize_payment_providers(service: PaymentService,
                                       payment_config: dict[str, Any] | None = None) -> PaymentService:
    """
    Register the mock provider always, and Square/Stripe when their
    credentials are present and accepted.

    Default provider: DEFAULT_PAYMENT_PROVIDER when it was registered, else
    the first configured real provider, else mock.
    """
    payment_config = payment_config or get_payment_config()
    service.register_provider(MockPaymentProvider())
    configured: list[str] = []

    if is_square_configured(payment_config):
        square = SquarePaymentProvider()
        if await square.initialize(payment_config['square']):
            service.register_provider(square)
            configured.append(square.provider)
        else:
            logger.error("[Payment] Square credentials rejected; provider disabled")

    if is_stripe_configured(payment_config):
        stripe_provider = StripePaymentProvider()
        if await stripe_provider.initialize(payment_config['stripe']):
            service.register_provider(stripe_provider)
            configured.append(stripe_provider.provider)
        else:
            logger.error("[Payment] Stripe credentials rejected; provider disabled")

    requested = payment_config.get('default_provider')
    if requested and service.get_provider(requested) is not None:
        default = requested
    else:
        if requested:
            logger.warning(f"[Payment] Default provider '{requested}' is not available")
        default = configured[0] if configured else PaymentProviderType.MOCK.value
    service.set_default_provider(default)
    logger.info(f"[Payment] Providers: {', '.join(p['id'] for p in service.get_available_providers())}; "
                f"default={default}")
    return service
