"""
Opaque continuation tokens for the product listing.

A cursor is URL-safe base64 over a small JSON object describing the last
product of the previous page: {id, price, name, created_at, featured}.
Only `id` drives the next query (keyset on id ascending); the remaining
fields ride along so clients can render "continue from" hints.
"""

import base64
import binascii
import json

from pydantic import ValidationError

from exceptions.product import InvalidCursorException
from models.product import ProductCursor, ProductDTO


def encode_cursor(product: ProductDTO | ProductCursor) -> str:
    payload = {
        'id': product.id,
        'price': product.retail_price if isinstance(product, ProductDTO) else product.price,
        'name': product.name,
        'created_at': product.created_at.isoformat() if product.created_at else None,
        'featured': bool(product.featured),
    }
    raw = json.dumps(payload, separators=(',', ':'), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> ProductCursor:
    """
    Decode a cursor produced by encode_cursor().

    Raises:
        InvalidCursorException: token is not base64, not JSON, or lacks an integer id
    """
    if not token:
        raise InvalidCursorException(token or "", "empty cursor")
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorException(token, f"not a valid cursor ({e.__class__.__name__})")

    if not isinstance(payload, dict) or not isinstance(payload.get('id'), int):
        raise InvalidCursorException(token, "cursor has no product id")
    try:
        return ProductCursor.model_validate(payload)
    except ValidationError as e:
        raise InvalidCursorException(token, f"malformed cursor fields ({e.error_count()} errors)")
