import os
import sys

from dotenv import load_dotenv

from enums.currency import Currency
from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    _runtime_env_str = os.environ.get("RUNTIME_ENVIRONMENT")
    if not _runtime_env_str:
        raise ValueError("RUNTIME_ENVIRONMENT environment variable is not set")
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(_runtime_env_str)
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT")) if os.environ.get("WEBAPP_PORT") else 8000

# Database
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/shopfront.db")

# Admin back-office authentication (X-Admin-Token header)
ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN")

# Shared with the upstream auth proxy; X-User-Id must carry X-User-Signature when set
USER_ID_SIGNING_SECRET = os.environ.get("USER_ID_SIGNING_SECRET")

# Parse CURRENCY with error handling
try:
    CURRENCY = Currency(os.environ.get("CURRENCY", "USD"))
except ValueError as e:
    valid_currencies = [c.value for c in Currency]
    print(f"\n ERROR: Invalid CURRENCY configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_currencies)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('CURRENCY', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: CURRENCY={valid_currencies[0]}\n", file=sys.stderr)
    sys.exit(1)

# Parse PRODUCTS_PAGE_SIZE with error handling
try:
    PRODUCTS_PAGE_SIZE = int(os.environ.get("PRODUCTS_PAGE_SIZE", "12"))
    if PRODUCTS_PAGE_SIZE <= 0:
        raise ValueError(f"PRODUCTS_PAGE_SIZE must be positive (got: {PRODUCTS_PAGE_SIZE})")
except ValueError as e:
    print(f"\n ERROR: Invalid PRODUCTS_PAGE_SIZE configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Expected: Positive integer (e.g., 12, 24, 48)", file=sys.stderr)
    print(f"Current value: {os.environ.get('PRODUCTS_PAGE_SIZE', '(not set)')}\n", file=sys.stderr)
    sys.exit(1)

# Checkout: tax charged on subtotal + shipping (0.08 = 8%)
TAX_RATE = float(os.environ.get("TAX_RATE", "0.08"))

PRODUCTS_MAX_PAGE_SIZE = int(os.environ.get("PRODUCTS_MAX_PAGE_SIZE", "100"))
CATEGORY_TREE_MAX_DEPTH = int(os.environ.get("CATEGORY_TREE_MAX_DEPTH", "5"))

# Anonymous cart cookie
CART_COOKIE_NAME = os.environ.get("CART_COOKIE_NAME", "cart_id")
CART_COOKIE_MAX_AGE_DAYS = int(os.environ.get("CART_COOKIE_MAX_AGE_DAYS", "30"))
CART_COOKIE_SECURE = os.environ.get("CART_COOKIE_SECURE", "false") == "true"

# Store details printed on receipts
STORE_NAME = os.environ.get("STORE_NAME", "Shopfront")
STORE_ADDRESS = os.environ.get("STORE_ADDRESS", "")
STORE_EMAIL = os.environ.get("STORE_EMAIL", "")
STORE_WEBSITE = os.environ.get("STORE_WEBSITE", "")

# Payment Providers
# Square
SQUARE_ACCESS_TOKEN = os.environ.get("SQUARE_ACCESS_TOKEN")
SQUARE_APP_ID = os.environ.get("SQUARE_APP_ID")
SQUARE_LOCATION_ID = os.environ.get("SQUARE_LOCATION_ID")
SQUARE_ENVIRONMENT = os.environ.get("SQUARE_ENVIRONMENT", "sandbox")  # sandbox | production
SQUARE_WEBHOOK_SIGNATURE_KEY = os.environ.get("SQUARE_WEBHOOK_SIGNATURE_KEY")
SQUARE_WEBHOOK_URL = os.environ.get("SQUARE_WEBHOOK_URL", "")  # Must match the URL registered with Square

# Stripe
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
STRIPE_PUBLISHABLE_KEY = os.environ.get("STRIPE_PUBLISHABLE_KEY")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
STRIPE_ENVIRONMENT = os.environ.get("STRIPE_ENVIRONMENT", "test")  # test | live

DEFAULT_PAYMENT_PROVIDER = os.environ.get("DEFAULT_PAYMENT_PROVIDER", "")

# Outbound HTTP timeout for provider REST calls (seconds)
PAYMENT_HTTP_TIMEOUT_SECONDS = float(os.environ.get("PAYMENT_HTTP_TIMEOUT_SECONDS", "15"))

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs

# Log Retention: Environment-specific defaults
# Dev: 30 days for debugging
# Prod: 5 days default to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))

# HTTP Security Configuration
SECURITY_HEADERS_ENABLED = os.environ.get("SECURITY_HEADERS_ENABLED", "true") == "true"
CSP_ENABLED = os.environ.get("CSP_ENABLED", "false") == "true"
HSTS_ENABLED = os.environ.get("HSTS_ENABLED", "false") == "true"  # Only behind HTTPS
CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",") if os.environ.get("CORS_ALLOWED_ORIGINS") else []
