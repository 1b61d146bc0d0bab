"""Application layer package - use cases and services."""

from borderwatch.application.alerts import AlertAggregator
from borderwatch.application.capture import (
    CaptureManager,
    CaptureStatus,
    LiveCaptureSession,
    SingleSlotRunner,
)
from borderwatch.application.csv_import import import_plate_csv, parse_plate_csv
from borderwatch.application.detection import DetectionService
from borderwatch.application.detection_log import DetectionLog
from borderwatch.application.idempotency import IdempotencyService
from borderwatch.application.watchlist import WatchlistStore

__all__ = [
    "AlertAggregator",
    "CaptureManager",
    "CaptureStatus",
    "DetectionLog",
    "DetectionService",
    "IdempotencyService",
    "LiveCaptureSession",
    "SingleSlotRunner",
    "WatchlistStore",
    "import_plate_csv",
    "parse_plate_csv",
]
