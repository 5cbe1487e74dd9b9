"""Security Headers Middleware

Adds security headers to HTTP responses served by the storefront API.

The checkout page embeds the Stripe.js and Square Web Payments SDK
iframes, so the Permissions-Policy keeps the Payment Request API open
and the CSP allows those two origins.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import config

STRIPE_ORIGINS = ["https://js.stripe.com", "https://api.stripe.com", "https://hooks.stripe.com"]
SQUARE_ORIGINS = ["https://web.squarecdn.com", "https://sandbox.web.squarecdn.com",
                  "https://pci-connect.squareup.com", "https://pci-connect.squareupsandbox.com"]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request and add security headers to response.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response with security headers added
        """
        response = await call_next(request)

        if not config.SECURITY_HEADERS_ENABLED:
            return response

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # API responses are never framed
        response.headers["X-Frame-Options"] = "DENY"

        # Only behind HTTPS
        if config.HSTS_ENABLED:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # payment=(self) keeps Apple Pay / Google Pay buttons working
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), "
            "payment=(self), usb=(), magnetometer=(), gyroscope=()"
        )

        return response


class CSPMiddleware(BaseHTTPMiddleware):
    """Middleware that adds Content Security Policy headers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if not config.CSP_ENABLED:
            return response

        payment_origins = " ".join(STRIPE_ORIGINS + SQUARE_ORIGINS)
        csp_directives = [
            "default-src 'self'",
            f"script-src 'self' {payment_origins}",
            f"frame-src {payment_origins}",
            f"connect-src 'self' {payment_origins}",
            "img-src 'self' data: https:",
            "frame-ancestors 'none'",
            "base-uri 'none'",
            "form-action 'self'",
        ]

        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        return response
