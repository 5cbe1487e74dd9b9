"""
Unit tests for SecretMaskingFilter (utils/logging_config.py).
"""

import logging

import pytest

from utils.logging_config import SecretMaskingFilter


def _record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args or None, None)


class TestSecretMaskingFilter:

    @pytest.mark.parametrize("text,hidden,marker", [
        ("key sk_test_4eC39HqLyjWDarjtT1zdp7dc", "sk_test_4eC39HqLyjWDarjtT1zdp7dc", "[REDACTED_STRIPE_KEY]"),
        ("secret whsec_0123456789abcdef", "whsec_0123456789abcdef", "[REDACTED_WEBHOOK_SECRET]"),
        ("token EAAAl1234567890abcdefghijklmnop", "EAAAl1234567890abcdefghijklmnop", "[REDACTED_SQUARE_TOKEN]"),
        ("Authorization: Bearer abc.def.ghi", "abc.def.ghi", "[REDACTED_BEARER_TOKEN]"),
        ("card 4242 4242 4242 4242 used", "4242 4242 4242 4242", "[REDACTED_CARD]"),
        ("mail buyer@example.com", "buyer@example.com", "[REDACTED_EMAIL]"),
        ("client pi_3N1abc_secret_XyZ123", "pi_3N1abc_secret_XyZ123", "[REDACTED_CLIENT_SECRET]"),
    ])
    def test_mask(self, text, hidden, marker):
        masked = SecretMaskingFilter.mask(text)

        assert hidden not in masked
        assert marker in masked

    def test_publishable_key_left_alone(self):
        assert SecretMaskingFilter.mask("pk_test_51Habcdefgh") == "pk_test_51Habcdefgh"

    def test_payment_ids_left_alone(self):
        text = "[Payment] Stripe process failed for pi_3N1abcdefgh: card_declined"

        assert SecretMaskingFilter.mask(text) == text

    def test_filter_masks_message_and_args(self):
        record = _record("charging %s for %s", "buyer@example.com", 42)

        assert SecretMaskingFilter().filter(record) is True
        assert record.args == ("[REDACTED_EMAIL]", 42)
        assert "buyer@example.com" not in record.getMessage()
