"""Logging context middleware for request correlation."""

import time

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.sitehost.core.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)

# Static site traffic would drown out API logs
QUIET_PREFIXES = ("/sites/", "/health", "/metrics")


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind request_id to log context and log one line per API request."""
    clear_request_context()
    bind_request_context(correlation_id.get())
    started = time.perf_counter()
    try:
        response = await call_next(request)
        if not request.url.path.startswith(QUIET_PREFIXES):
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        return response
    finally:
        clear_request_context()
