"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import sys
import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# config reads the environment at import time; set it before anything imports config
ADMIN_TOKEN = "test-admin-token-0123456789abcdef0123456789"
SQUARE_SIGNATURE_KEY = "square-test-signature-key"
SQUARE_NOTIFICATION_URL = "https://shop.example.com/api/webhooks/square"
STRIPE_WEBHOOK_SECRET = "whsec_test_0123456789abcdef"

os.environ["RUNTIME_ENVIRONMENT"] = "TEST"
os.environ["ADMIN_API_TOKEN"] = ADMIN_TOKEN
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CURRENCY"] = "USD"
os.environ["SQUARE_WEBHOOK_SIGNATURE_KEY"] = SQUARE_SIGNATURE_KEY
os.environ["SQUARE_WEBHOOK_URL"] = SQUARE_NOTIFICATION_URL
os.environ["STRIPE_WEBHOOK_SECRET"] = STRIPE_WEBHOOK_SECRET
for key in ("STRIPE_SECRET_KEY", "STRIPE_PUBLISHABLE_KEY", "SQUARE_ACCESS_TOKEN", "DEFAULT_PAYMENT_PROVIDER",
            "USER_ID_SIGNING_SECRET"):
    os.environ.pop(key, None)

from models.base import Base
import models  # noqa: F401  registers every table on Base.metadata
from models.product import ProductCreateDTO


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine (in-memory SQLite, one shared connection)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_product(test_session):
    """Factory creating catalogue products through ProductService."""
    from services.product import ProductService

    counter = {'n': 0}

    async def _make(**overrides):
        counter['n'] += 1
        values = {
            'name': f"Product {counter['n']}",
            'sku': f"SKU-{counter['n']:04d}",
            'retail_price': 10.0,
            'stock': 10,
        }
        values.update(overrides)
        return await ProductService.create_product(ProductCreateDTO(**values), test_session)

    return _make


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def admin_headers():
    return {'X-Admin-Token': ADMIN_TOKEN}


@pytest_asyncio.fixture
async def api_client(test_engine):
    """
    httpx client bound to the FastAPI app.

    Routes get sessions from the test engine and a PaymentService with the
    mock provider only; the app lifespan is not run.
    """
    import httpx

    from app import app
    from payment.mock import MockPaymentProvider
    from payment.service import PaymentService
    from web.dependencies import get_session

    async_session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_test_session():
        async with async_session_maker() as session:
            yield session

    payment_service = PaymentService()
    payment_service.register_provider(MockPaymentProvider())
    app.dependency_overrides[get_session] = _get_test_session
    app.state.payment_service = payment_service

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
