"""API routes package."""

from fastapi import APIRouter

from borderwatch.api.routes import alerts, capture, detections, watchlist

# Main API router
api_router = APIRouter(prefix="/api/v1")

# Include route modules
api_router.include_router(watchlist.router)
api_router.include_router(detections.router)
api_router.include_router(alerts.router)
api_router.include_router(capture.router)
