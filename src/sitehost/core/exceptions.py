"""Error taxonomy and exception handlers with request_id in responses."""

from uuid import UUID

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)


class SiteHostError(Exception):
    """Base class for errors surfaced to the HTTP layer.

    Subclasses set ``status_code``; the handler below turns any instance into a
    JSON response so services never import FastAPI's HTTPException.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# --- Validation (4xx) ---


class ValidationFailedError(SiteHostError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"


class InvalidNameError(ValidationFailedError):
    def __init__(self, name: str, reason: str | None = None):
        self.name = name
        super().__init__(reason or f"Invalid site name: {name!r}")


class InvalidFieldError(ValidationFailedError):
    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(f"Invalid field '{field}': {reason}")


class MissingFieldError(ValidationFailedError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing field: {field}")


# --- Archive codec ---


class ArchiveError(ValidationFailedError):
    detail = "Invalid archive"


class UnsupportedFormatError(ArchiveError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Unsupported archive format: {filename!r} (expected .tar.gz, .tgz or .zip)"
        )


class UnsafePathError(ArchiveError):
    def __init__(self, entry_name: str):
        self.entry_name = entry_name
        super().__init__(f"Archive entry escapes the destination: {entry_name!r}")


class CorruptArchiveError(ArchiveError):
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        super().__init__(f"Could not read archive {filename!r}: {reason}")


# --- Conflicts ---


class ConflictError(SiteHostError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Conflict"


class NameConflictError(ConflictError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Site name '{name}' is already owned by another user")


class SiteExistsError(ConflictError):
    def __init__(self, site_id: UUID):
        self.site_id = site_id
        super().__init__(f"Site {site_id} already exists")


class UsernameTakenError(ConflictError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username '{username}' is already taken")


class UserDeletionBlockedError(ConflictError):
    detail = "User still owns sites; delete them first"


# --- Lookup / auth ---


class NotFoundError(SiteHostError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class SiteNotFoundError(NotFoundError):
    def __init__(self, ref: UUID | str):
        self.ref = ref
        super().__init__(f"Site {ref} not found")


class UserNotFoundError(NotFoundError):
    detail = "User not found"


class AuthenticationError(SiteHostError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication failed"


class PermissionDeniedError(SiteHostError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Not allowed to modify this site"


class PayloadTooLargeError(SiteHostError):
    status_code = 413  # Content Too Large

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Upload exceeds the {limit} byte limit")


# --- Server faults (opaque to clients) ---


class StorageFailureError(SiteHostError):
    detail = "Storage failure"


class FilesystemFailureError(SiteHostError):
    detail = "Filesystem failure"


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(SiteHostError)
    async def sitehost_exception_handler(request: Request, exc: SiteHostError) -> JSONResponse:
        request_id = correlation_id.get()
        if exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Server fault",
                error=type(exc).__name__,
                detail=exc.detail,
                request_id=request_id,
                path=request.url.path,
                exc_info=exc,
            )
            detail = "Internal server error"
        else:
            detail = exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": detail,
                "error": type(exc).__name__,
                "request_id": request_id,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
