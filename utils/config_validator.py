"""
Configuration Validation Module

Validates critical configuration values at startup to fail-fast
with clear error messages instead of runtime failures.

There is no degraded mode: a production deployment with missing payment
credentials refuses to start rather than serving a checkout that cannot
take money.
"""

import sys
from typing import Optional

from enums.runtime_environment import RuntimeEnvironment


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_required_config(value: Optional[str], name: str, example: str = "") -> None:
    """
    Validate that a required config value is set.

    Args:
        value: The config value to check
        name: Name of the config variable
        example: Optional example value to show in error message

    Raises:
        ConfigValidationError: If value is missing
    """
    if not value:
        error_msg = f"{name} is required but not set!"
        if example:
            error_msg += f"\nAdd to .env: {name}={example}"
        raise ConfigValidationError(error_msg)


def validate_admin_token(admin_token: Optional[str]) -> None:
    """
    Validate the back-office API token.

    Args:
        admin_token: ADMIN_API_TOKEN value

    Raises:
        ConfigValidationError: If token is missing, empty, or too weak
    """
    if not admin_token or len(admin_token.strip()) == 0:
        raise ConfigValidationError(
            "ADMIN_API_TOKEN is required and must not be empty!\n"
            "Generate a secure token with: openssl rand -hex 32\n"
            "Add to .env: ADMIN_API_TOKEN=<your-generated-token>"
        )

    if len(admin_token) < 32:
        raise ConfigValidationError(
            f"ADMIN_API_TOKEN is too weak (length: {len(admin_token)}, minimum: 32)!\n"
            "Generate a secure token with: openssl rand -hex 32"
        )


def validate_square_config(config_module) -> None:
    """
    Validate Square settings when Square is enabled.

    Square counts as enabled once SQUARE_ACCESS_TOKEN is set; the
    application id and location id are then mandatory.
    """
    if not getattr(config_module, 'SQUARE_ACCESS_TOKEN', None):
        return
    validate_required_config(config_module.SQUARE_APP_ID, 'SQUARE_APP_ID', 'sandbox-sq0idb-...')
    validate_required_config(config_module.SQUARE_LOCATION_ID, 'SQUARE_LOCATION_ID', '<location-id>')
    if config_module.SQUARE_ENVIRONMENT not in ("sandbox", "production"):
        raise ConfigValidationError(
            f"SQUARE_ENVIRONMENT must be 'sandbox' or 'production' (got: {config_module.SQUARE_ENVIRONMENT})"
        )


def validate_stripe_config(config_module) -> None:
    """Validate Stripe settings when STRIPE_SECRET_KEY is set."""
    secret_key = getattr(config_module, 'STRIPE_SECRET_KEY', None)
    if not secret_key:
        return
    validate_required_config(config_module.STRIPE_PUBLISHABLE_KEY, 'STRIPE_PUBLISHABLE_KEY', 'pk_test_...')
    if not secret_key.startswith(("sk_", "rk_")):
        raise ConfigValidationError("STRIPE_SECRET_KEY must start with 'sk_' or 'rk_'")


def validate_production_payments(config_module) -> None:
    """
    In PROD at least one real provider must be configured, and every
    configured provider needs its webhook secret.
    """
    square_enabled = bool(getattr(config_module, 'SQUARE_ACCESS_TOKEN', None))
    stripe_enabled = bool(getattr(config_module, 'STRIPE_SECRET_KEY', None))

    if not square_enabled and not stripe_enabled:
        raise ConfigValidationError(
            "No payment provider configured for production!\n"
            "Set STRIPE_SECRET_KEY/STRIPE_PUBLISHABLE_KEY or "
            "SQUARE_ACCESS_TOKEN/SQUARE_APP_ID/SQUARE_LOCATION_ID."
        )
    if square_enabled:
        validate_required_config(config_module.SQUARE_WEBHOOK_SIGNATURE_KEY, 'SQUARE_WEBHOOK_SIGNATURE_KEY')
        validate_required_config(config_module.SQUARE_WEBHOOK_URL, 'SQUARE_WEBHOOK_URL',
                                 'https://shop.example.com/api/webhooks/square')
    if stripe_enabled:
        validate_required_config(config_module.STRIPE_WEBHOOK_SECRET, 'STRIPE_WEBHOOK_SECRET', 'whsec_...')


def validate_startup_config(config_module) -> None:
    """
    Validate all critical configuration at startup.

    Args:
        config_module: The config module to validate

    Raises:
        ConfigValidationError: If any validation fails
    """
    validate_admin_token(getattr(config_module, 'ADMIN_API_TOKEN', None))
    validate_square_config(config_module)
    validate_stripe_config(config_module)

    if config_module.RUNTIME_ENVIRONMENT == RuntimeEnvironment.PROD:
        validate_production_payments(config_module)
        validate_required_config(getattr(config_module, 'USER_ID_SIGNING_SECRET', None), 'USER_ID_SIGNING_SECRET',
                                 '<secret shared with the auth proxy>')


def validate_or_exit(config_module) -> None:
    """
    Validate configuration and exit with error code 1 if validation fails.

    This is the main entry point for startup validation.

    Args:
        config_module: The config module to validate
    """
    try:
        validate_startup_config(config_module)
    except ConfigValidationError as e:
        print(f"\n ERROR: Configuration Validation Failed\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nStartup aborted. Please fix configuration and try again.\n", file=sys.stderr)
        sys.exit(1)
