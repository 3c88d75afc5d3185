"""Reject oversized request bodies before they are read."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)


def make_upload_limit_middleware(max_size: int):  # type: ignore[no-untyped-def]
    """Build a middleware refusing bodies whose Content-Length exceeds ``max_size``.

    Chunked bodies carry no length; the multipart reader enforces the same
    limit while streaming.
    """

    async def upload_limit_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > max_size:
            logger.info("Rejected oversized body", path=request.url.path, size=int(content_length))
            return JSONResponse(
                status_code=413,
                content={
                    "detail": f"Upload exceeds the {max_size} byte limit",
                    "error": "PayloadTooLargeError",
                    "request_id": correlation_id.get(),
                },
            )
        return await call_next(request)

    return upload_limit_middleware
