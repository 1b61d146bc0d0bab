"""
FastAPI dependencies for dependency injection.

Services are built once in the application lifespan and kept on
``app.state.services``; these dependencies hand them to route handlers.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from borderwatch.application.alerts import AlertAggregator
from borderwatch.application.capture import CaptureManager
from borderwatch.application.detection import DetectionService
from borderwatch.application.detection_log import DetectionLog
from borderwatch.application.watchlist import WatchlistStore
from borderwatch.core.security import check_rate_limit, verify_api_key
from borderwatch.domain.ports import KeyValueStore
from borderwatch.infrastructure.ai import GeminiInvoker


@dataclass
class Services:
    """Process-wide service graph."""

    store: KeyValueStore
    invoker: GeminiInvoker
    watchlist: WatchlistStore
    alerts: AlertAggregator
    detection_log: DetectionLog
    detection: DetectionService
    capture: CaptureManager


def get_services(request: Request) -> Services:
    return request.app.state.services


AppServices = Annotated[Services, Depends(get_services)]
ApiKeyAuth = Annotated[None, Depends(verify_api_key)]
RateLimited = Annotated[None, Depends(check_rate_limit)]


def get_watchlist(services: AppServices) -> WatchlistStore:
    return services.watchlist


def get_alert_aggregator(services: AppServices) -> AlertAggregator:
    return services.alerts


def get_detection_log(services: AppServices) -> DetectionLog:
    return services.detection_log


def get_detection_service(services: AppServices) -> DetectionService:
    return services.detection


def get_capture_manager(services: AppServices) -> CaptureManager:
    return services.capture


# Type aliases for service dependencies
Watchlist = Annotated[WatchlistStore, Depends(get_watchlist)]
Alerts = Annotated[AlertAggregator, Depends(get_alert_aggregator)]
DetectionLogDep = Annotated[DetectionLog, Depends(get_detection_log)]
Detection = Annotated[DetectionService, Depends(get_detection_service)]
Capture = Annotated[CaptureManager, Depends(get_capture_manager)]
