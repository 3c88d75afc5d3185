import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.sitehost.api.middlewares import setup_middlewares
from src.sitehost.api.v1.router import api_router
from src.sitehost.core.config import Settings, get_settings
from src.sitehost.core.exceptions import setup_exception_handlers
from src.sitehost.core.logging import get_logger, setup_logging
from src.sitehost.core.rate_limit import limiter
from src.sitehost.core.shutdown import deployment_tracker
from src.sitehost.storage import open_storage

logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "auth", "description": "Registration and bearer tokens"},
    {"name": "sites", "description": "Upload, look up and manage static sites"},
    {"name": "user", "description": "The authenticated user's account"},
    {"name": "admin", "description": "Operator reports (X-Admin-Key)"},
]


def _make_lifespan(settings: Settings):  # type: ignore[no-untyped-def]
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Application lifespan - open storage, drain deployments on shutdown."""
        setup_logging(settings.debug)
        logger.info(f"Starting {settings.app_name}", storage_backend=settings.storage_backend)

        settings.tmp_dir.mkdir(parents=True, exist_ok=True)
        app.state.storage = await open_storage(settings)

        yield

        grace_period = settings.shutdown_grace_period
        logger.info(
            f"Shutdown initiated, waiting for {deployment_tracker.in_flight_count} deployments..."
        )
        await deployment_tracker.start_shutdown()
        if not await deployment_tracker.wait_for_drain(timeout=grace_period):
            logger.warning(
                f"Shutdown timeout after {grace_period}s",
                active=deployment_tracker.active,
            )

        await app.state.storage.aclose()
        logger.info("Shutdown complete")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Passing ``settings`` overrides the cached environment settings for every
    dependency, which is how tests point the app at a scratch directory.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Static site hosting: upload an archive, serve it by id and by name",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=_make_lifespan(settings),
        docs_url="/docs" if settings.enable_openapi else None,
        redoc_url="/redoc" if settings.enable_openapi else None,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    setup_exception_handlers(app)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    setup_middlewares(app, settings)

    app.include_router(api_router)

    # Prometheus metrics instrumentation
    instrumentator = Instrumentator(excluded_handlers=["^/sites", "^/metrics$"]).instrument(app)

    # Protect /metrics endpoint if API key is configured
    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Liveness plus a storage round trip."""
        if deployment_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_deployments": deployment_tracker.in_flight_count,
                    "message": "Server is shutting down",
                },
                status_code=503,
            )

        health_status: dict[str, Any] = {
            "status": "healthy",
            "storage": settings.storage_backend,
            "in_flight_deployments": deployment_tracker.in_flight_count,
        }
        try:
            health_status["users"] = await request.app.state.storage.users.count()
        except Exception as e:
            logger.warning("Health check storage probe failed", error=str(e))
            health_status["status"] = "unhealthy"
            health_status["storage_error"] = str(e)

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    # Published trees: /sites/{id}/ and /sites/{name}/ (index.html resolution)
    app.mount(
        "/sites",
        StaticFiles(directory=settings.sites_dir, html=True, check_dir=False),
        name="sites",
    )

    return app


app = create_app()
