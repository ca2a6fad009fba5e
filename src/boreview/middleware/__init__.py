"""Middleware stack for the API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boreview.config import Settings
from boreview.middleware.error_handler import setup_error_handlers
from boreview.middleware.logging import setup_logging
from boreview.middleware.rate_limit import RateLimitMiddleware
from boreview.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from boreview.middleware.security_headers import SecurityHeadersMiddleware

CORS_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_EXPOSED_HEADERS = [REQUEST_ID_HEADER, "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and middleware.

    Starlette runs middleware in reverse order of registration. CORS goes in
    last so its headers also land on 429s from the global limiter; the
    admin session cookie needs ``allow_credentials``.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=CORS_EXPOSED_HEADERS,
    )
