"""
Unit tests for startup configuration validation (utils/config_validator.py).
"""

from types import SimpleNamespace

import pytest

from enums.runtime_environment import RuntimeEnvironment
from utils.config_validator import (
    ConfigValidationError,
    validate_admin_token,
    validate_or_exit,
    validate_startup_config,
)

STRONG_TOKEN = "a" * 64


def _config(**overrides) -> SimpleNamespace:
    values = {
        'RUNTIME_ENVIRONMENT': RuntimeEnvironment.DEV,
        'ADMIN_API_TOKEN': STRONG_TOKEN,
        'SQUARE_ACCESS_TOKEN': "",
        'SQUARE_APP_ID': "",
        'SQUARE_LOCATION_ID': "",
        'SQUARE_ENVIRONMENT': "sandbox",
        'SQUARE_WEBHOOK_SIGNATURE_KEY': "",
        'SQUARE_WEBHOOK_URL': "",
        'STRIPE_SECRET_KEY': "",
        'STRIPE_PUBLISHABLE_KEY': "",
        'STRIPE_WEBHOOK_SECRET': "",
        'USER_ID_SIGNING_SECRET': "proxy-secret",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestAdminToken:

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing(self, token):
        with pytest.raises(ConfigValidationError, match="required"):
            validate_admin_token(token)

    def test_too_short(self):
        with pytest.raises(ConfigValidationError, match="too weak"):
            validate_admin_token("short-token")


class TestStartupConfig:

    def test_dev_without_providers(self):
        validate_startup_config(_config())

    def test_square_needs_location(self):
        with pytest.raises(ConfigValidationError, match="SQUARE_APP_ID"):
            validate_startup_config(_config(SQUARE_ACCESS_TOKEN="EAAA-token"))

    def test_square_environment_checked(self):
        with pytest.raises(ConfigValidationError, match="SQUARE_ENVIRONMENT"):
            validate_startup_config(_config(SQUARE_ACCESS_TOKEN="EAAA-token", SQUARE_APP_ID="app",
                                            SQUARE_LOCATION_ID="L1", SQUARE_ENVIRONMENT="staging"))

    def test_stripe_key_prefix(self):
        with pytest.raises(ConfigValidationError, match="sk_"):
            validate_startup_config(_config(STRIPE_SECRET_KEY="pk_test_wrong", STRIPE_PUBLISHABLE_KEY="pk_test_1"))

    def test_prod_requires_a_provider(self):
        with pytest.raises(ConfigValidationError, match="No payment provider"):
            validate_startup_config(_config(RUNTIME_ENVIRONMENT=RuntimeEnvironment.PROD))

    def test_prod_requires_webhook_secret(self):
        prod = _config(RUNTIME_ENVIRONMENT=RuntimeEnvironment.PROD,
                       STRIPE_SECRET_KEY="sk_live_123", STRIPE_PUBLISHABLE_KEY="pk_live_123")

        with pytest.raises(ConfigValidationError, match="STRIPE_WEBHOOK_SECRET"):
            validate_startup_config(prod)

    def test_prod_with_stripe(self):
        validate_startup_config(_config(RUNTIME_ENVIRONMENT=RuntimeEnvironment.PROD,
                                        STRIPE_SECRET_KEY="sk_live_123", STRIPE_PUBLISHABLE_KEY="pk_live_123",
                                        STRIPE_WEBHOOK_SECRET="whsec_123"))

    def test_exit_on_failure(self):
        with pytest.raises(SystemExit) as exc_info:
            validate_or_exit(_config(ADMIN_API_TOKEN=""))

        assert exc_info.value.code == 1

    def test_prod_requires_user_id_signing_secret(self):
        prod = _config(RUNTIME_ENVIRONMENT=RuntimeEnvironment.PROD, USER_ID_SIGNING_SECRET="",
                       STRIPE_SECRET_KEY="sk_live_123", STRIPE_PUBLISHABLE_KEY="pk_live_123",
                       STRIPE_WEBHOOK_SECRET="whsec_123")

        with pytest.raises(ConfigValidationError, match="USER_ID_SIGNING_SECRET"):
            validate_startup_config(prod)
