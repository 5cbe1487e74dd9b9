"""
FastAPI dependencies shared by the routers.
"""
import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Header, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import get_db_session
from payment.service import PaymentService

logger = logging.getLogger(__name__)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_db_session() as session:
        yield session


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """
    Back-office guard: X-Admin-Token must equal ADMIN_API_TOKEN.

    Security: timing-safe comparison; a missing header is 401, a wrong one 403.
    """
    if not config.ADMIN_API_TOKEN:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin API is disabled")
    if not x_admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Admin-Token header")
    if not hmac.compare_digest(x_admin_token.encode("utf-8"), config.ADMIN_API_TOKEN.encode("utf-8")):
        logger.warning("[Admin] Rejected request with invalid admin token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin token")


@dataclass
class CartOwner:
    user_id: str | None = None
    anonymous_id: str | None = None
    issued_cookie: bool = False


def sign_user_id(user_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of the user id, as the auth proxy sends it in X-User-Signature."""
    return hmac.new(secret.encode("utf-8"), user_id.encode("utf-8"), hashlib.sha256).hexdigest()


def get_cart_owner(request: Request, response: Response,
                   x_user_id: str | None = Header(default=None),
                   x_user_signature: str | None = Header(default=None)) -> CartOwner:
    """
    Resolve who the cart belongs to.

    X-User-Id is set by the upstream auth proxy for signed-in customers.
    This service does no authentication of its own: it trusts the proxy to
    strip any client-supplied X-User-Id. With USER_ID_SIGNING_SECRET set
    (mandatory in PROD) the proxy must also send X-User-Signature, the
    HMAC of the id, and unsigned or forged ids are rejected with 401.

    Everyone else is identified by the anonymous cart cookie, which is
    issued on first use.
    """
    if x_user_id:
        user_id = x_user_id.strip()
        if config.USER_ID_SIGNING_SECRET:
            expected = sign_user_id(user_id, config.USER_ID_SIGNING_SECRET)
            if not x_user_signature or not hmac.compare_digest(x_user_signature, expected):
                logger.warning("[Cart] Rejected X-User-Id without a valid signature")
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user signature")
        return CartOwner(user_id=user_id)

    anonymous_id = request.cookies.get(config.CART_COOKIE_NAME)
    if anonymous_id:
        return CartOwner(anonymous_id=anonymous_id)

    anonymous_id = uuid.uuid4().hex
    response.set_cookie(
        key=config.CART_COOKIE_NAME,
        value=anonymous_id,
        max_age=config.CART_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=config.CART_COOKIE_SECURE,
        samesite="lax",
    )
    return CartOwner(anonymous_id=anonymous_id, issued_cookie=True)
