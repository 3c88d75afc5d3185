"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.sitehost.core.config import Settings
from src.sitehost.core.security import SecurityHeadersMiddleware

from .logging_context import logging_context_middleware
from .upload_limit import make_upload_limit_middleware

__all__ = [
    "setup_middlewares",
    "logging_context_middleware",
    "make_upload_limit_middleware",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Starlette wraps each new middleware around the previous ones, so they are
    added innermost first and the correlation id (outermost) comes last.
    """
    # Body size cap - runs right before the handler reads the body
    app.middleware("http")(make_upload_limit_middleware(settings.max_upload_size))

    # Logging context - binds request_id to structlog context
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    # Security headers (Helmet-style); relaxed under /sites/
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # Correlation ID - generates/propagates X-Request-ID
    app.add_middleware(CorrelationIdMiddleware)
