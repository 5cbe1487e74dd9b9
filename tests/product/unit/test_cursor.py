"""
Unit tests for the product continuation token (utils/cursor.py).
"""

import base64
import json
from datetime import datetime

import pytest

from exceptions.product import InvalidCursorException
from models.product import ProductDTO, ProductCursor
from utils.cursor import encode_cursor, decode_cursor


class TestCursor:

    def test_product_round_trip(self):
        product = ProductDTO(id=42, name="Lamp", retail_price=19.5, featured=True,
                             created_at=datetime(2026, 3, 1, 12, 0))

        cursor = decode_cursor(encode_cursor(product))

        assert cursor.id == 42
        assert cursor.price == 19.5
        assert cursor.name == "Lamp"
        assert cursor.featured is True
        assert cursor.created_at == datetime(2026, 3, 1, 12, 0)

    def test_token_is_url_safe(self):
        token = encode_cursor(ProductCursor(id=7, name="a/b+c?"))

        assert "=" not in token
        assert "/" not in token
        assert "+" not in token

    def test_non_json_token_rejected(self):
        token = base64.urlsafe_b64encode(b"hello world").decode().rstrip("=")

        with pytest.raises(InvalidCursorException):
            decode_cursor(token)

    def test_json_without_id_rejected(self):
        token = base64.urlsafe_b64encode(json.dumps({'name': "x"}).encode()).decode().rstrip("=")

        with pytest.raises(InvalidCursorException) as exc_info:
            decode_cursor(token)

        assert "no product id" in str(exc_info.value)

    def test_empty_token_rejected(self):
        with pytest.raises(InvalidCursorException):
            decode_cursor("")
