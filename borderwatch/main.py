"""
FastAPI application entry point.

Configures the application with:
- Lifespan handlers for storage, the detection client and watchlist import
- CORS middleware
- Correlation ID middleware
- Health and readiness probes
- API routes
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from borderwatch import __version__
from borderwatch.api import api_router
from borderwatch.api.deps import Services
from borderwatch.application.alerts import AlertAggregator
from borderwatch.application.capture import CaptureManager
from borderwatch.application.csv_import import import_plate_csv
from borderwatch.application.detection import DetectionService
from borderwatch.application.detection_log import DetectionLog
from borderwatch.application.idempotency import IdempotencyService
from borderwatch.application.watchlist import WatchlistStore
from borderwatch.core.config import Settings, get_settings
from borderwatch.core.logging import get_correlation_id, get_logger, set_correlation_id, setup_logging
from borderwatch.infrastructure.ai import GeminiInvoker
from borderwatch.infrastructure.capture import WebcamFrameSource
from borderwatch.infrastructure.db import close_db
from borderwatch.infrastructure.storage import build_store

# Initialize logging
setup_logging()
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = __version__


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str
    storage_reachable: bool
    ai_configured: bool


async def build_services(settings: Settings) -> Services:
    """
    Wire the service graph from settings.

    Args:
        settings: Application settings.

    Returns:
        Services: Ready-to-use services sharing one storage backend.
    """
    store = await build_store(settings)
    invoker = GeminiInvoker.from_settings(settings)
    watchlist = WatchlistStore(store)
    alerts = AlertAggregator(capacity=settings.alert_capacity)
    detection_log = DetectionLog(store, limit=settings.detection_log_limit)
    detection = DetectionService(
        invoker=invoker,
        watchlist=watchlist,
        alerts=alerts,
        detection_log=detection_log,
        idempotency=IdempotencyService(window_seconds=settings.idempotency_window_seconds),
        default_environmental_conditions=settings.default_environmental_conditions,
    )
    capture = CaptureManager(
        service=detection,
        source_factory=lambda: WebcamFrameSource(device=settings.camera_device),
        interval_seconds=settings.capture_interval_seconds,
    )
    return Services(
        store=store,
        invoker=invoker,
        watchlist=watchlist,
        alerts=alerts,
        detection_log=detection_log,
        detection=detection,
        capture=capture,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Startup: build services unless injected, import the watchlist CSV
    - Shutdown: stop live capture, close the HTTP client and database
    """
    logger.info("application_starting")
    settings = get_settings()

    services: Services | None = getattr(app.state, "services", None)
    if services is None:
        services = await build_services(settings)
        app.state.services = services

    if settings.watchlist_csv_path:
        imported, plates = await import_plate_csv(settings.watchlist_csv_path, services.watchlist)
        logger.info("watchlist_csv_loaded", imported=imported, size=len(plates))

    if not services.invoker.configured:
        logger.warning("ai_not_configured", hint="set GEMINI_API_KEY to enable detection")

    logger.info("application_started", storage_backend=settings.storage_backend)

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await services.capture.shutdown()
    await services.invoker.aclose()
    await close_db()
    logger.info("application_shutdown_complete")


def create_app(services: Services | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Pre-built services, used instead of building from settings.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="BorderWatch AI",
        description="Checkpoint surveillance assistant: plates, vehicle contents and persons of interest",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    if services is not None:
        app.state.services = services

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to each request."""
        correlation_id = request.headers.get("X-Correlation-ID")
        set_correlation_id(correlation_id)

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = get_correlation_id()

        return response

    # Health check endpoints
    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
    )
    async def health_check() -> HealthResponse:
        """
        Basic liveness probe.

        Returns 200 if the application is running.
        """
        return HealthResponse(status="healthy")

    @app.get(
        "/ready",
        response_model=ReadinessResponse,
        tags=["health"],
    )
    async def readiness_check(request: Request) -> ReadinessResponse:
        """
        Readiness probe.

        Returns 200 only if storage answers and an API key is configured.
        """
        services: Services = request.app.state.services
        storage_reachable = await services.store.ping()
        ai_configured = services.invoker.configured

        all_ready = storage_reachable and ai_configured

        response = ReadinessResponse(
            status="ready" if all_ready else "not_ready",
            storage_reachable=storage_reachable,
            ai_configured=ai_configured,
        )

        if not all_ready:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=response.model_dump(),
            )

        return response

    # Include API routes
    app.include_router(api_router)

    return app


# Create app instance
app = create_app()


def main() -> None:
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    logger.info("server_starting", host=settings.host, port=settings.port)
    uvicorn.run(
        "borderwatch.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
