"""Response hardening for a JSON-only API."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from scholar.core.config import settings

API_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    # Nothing here is meant to be rendered by a browser
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

PRODUCTION_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

# Responses carrying credentials, user records or OTPs
NO_STORE_PREFIXES = (
    "/api/signup",
    "/api/login",
    "/api/verify-otp",
    "/api/resend-otp",
    "/api/verify-and-login",
    "/api/forgot-password",
    "/api/reset-password",
    "/__test/",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers, and ``Cache-Control: no-store`` on account routes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        for name, value in API_HEADERS.items():
            response.headers.setdefault(name, value)
        if settings.environment == "production":
            response.headers.update(PRODUCTION_HEADERS)
        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"

        return response
