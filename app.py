import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config

# Validate critical configuration before the app is built
from utils.config_validator import validate_or_exit
validate_or_exit(config)

from db import create_db_and_tables
from exceptions import StorefrontException
from middleware.security_headers import SecurityHeadersMiddleware, CSPMiddleware
from payment.config import initialize_payment_providers
from payment.service import PaymentService
from processing.webhooks import webhooks_router
from utils.error_handler import http_status_for, error_payload
from web.admin_router import admin_router
from web.cart_router import cart_router
from web.category_router import category_router
from web.checkout_router import checkout_router
from web.order_router import order_router
from web.payment_router import payment_router
from web.product_router import product_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    await create_db_and_tables()
    app.state.payment_service = await initialize_payment_providers(PaymentService())
    logging.info(f"[Startup] Storefront ready ({config.RUNTIME_ENVIRONMENT.value})")

    yield

    # Shutdown
    logging.warning('Shutting down..')


app = FastAPI(lifespan=lifespan, title=config.STORE_NAME)

if config.SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware)
    logging.info("[Startup] Security headers middleware enabled")
else:
    logging.debug("[Startup] Security headers middleware disabled")

if config.CSP_ENABLED:
    app.add_middleware(CSPMiddleware)
    logging.info("[Startup] Content Security Policy middleware enabled")
else:
    logging.debug("[Startup] CSP middleware disabled")

if config.CORS_ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        # The anonymous cart rides on a cookie
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-User-Id", "X-User-Signature", "X-Admin-Token"],
    )
    logging.info(f"[Startup] CORS middleware enabled for origins: {config.CORS_ALLOWED_ORIGINS}")
else:
    logging.debug("[Startup] CORS middleware disabled (no allowed origins configured)")

app.include_router(category_router)
app.include_router(product_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(admin_router)
app.include_router(webhooks_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for container monitoring."""
    return {"status": "healthy"}


@app.exception_handler(StorefrontException)
async def storefront_exception_handler(request: Request, exc: StorefrontException):
    return JSONResponse(status_code=http_status_for(exc), content=error_payload(exc))


@app.exception_handler(Exception)
async def exception_handler(request: Request, exc: Exception):
    logging.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={'error': {'code': 'INTERNAL_ERROR', 'message': "An unexpected error occurred"}},
    )
