"""
Pytest configuration and fixtures.

Provides shared fixtures for testing including:
- In-memory and failing storage backends
- A mocked image-understanding client
- A fake camera
- Test client wired to those fakes
"""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from borderwatch.api.deps import Services
from borderwatch.application.alerts import AlertAggregator
from borderwatch.application.capture import CaptureManager
from borderwatch.application.detection import DetectionService
from borderwatch.application.detection_log import DetectionLog
from borderwatch.application.idempotency import IdempotencyService
from borderwatch.application.watchlist import WatchlistStore
from borderwatch.core.config import get_settings
from borderwatch.core.security import reset_rate_limiter
from borderwatch.domain.models import (
    DetectionKind,
    ObjectDetection,
    PlateRecognition,
    Severity,
    ThreatAssessment,
)
from borderwatch.domain.ports import FrameSource, KeyValueStore, StorageError
from borderwatch.infrastructure.capture import CaptureError
from borderwatch.infrastructure.storage import InMemoryStore


class FailingStore(KeyValueStore):
    """Backend whose every operation fails."""

    async def get(self, key: str) -> list[str] | None:
        raise StorageError("backend offline")

    async def set(self, key: str, items: list[str]) -> None:
        raise StorageError("backend offline")

    async def keys(self) -> list[str]:
        raise StorageError("backend offline")


class FakeFrameSource(FrameSource):
    """Camera returning a fixed JPEG, or failing when ``error`` is set."""

    def __init__(self, frame: bytes = b"\xff\xd8fake-jpeg", error: Exception | None = None):
        self.frame = frame
        self.error = error
        self.reads = 0
        self.closed = False

    async def read_frame(self) -> bytes:
        self.reads += 1
        if self.error is not None:
            raise self.error
        return self.frame

    async def close(self) -> None:
        self.closed = True


def make_invoker(results: dict[DetectionKind, object] | None = None) -> MagicMock:
    """Mock invoker returning a canned result per detection kind."""
    canned = {
        DetectionKind.PLATE: PlateRecognition(
            plate_number="akh-123b",
            vehicle_details="White Toyota Hilux",
            country_of_origin="Nigeria",
            confidence_score=0.9,
        ),
        DetectionKind.OBJECTS: ObjectDetection(
            objects_detected=["backpack", "handgun"],
            threat_level=Severity.LOW,
            confidence_score=0.8,
        ),
        DetectionKind.THREAT: ThreatAssessment(
            is_threat=True,
            name="John Doe",
            reason="Matches a wanted notice.",
            confidence_score=0.75,
        ),
    }
    canned.update(results or {})

    async def invoke(image_base64, kind, environmental_conditions="Unknown"):
        result = canned[kind]
        # Fresh copy per call, the pipeline mutates plate results
        if isinstance(result, PlateRecognition):
            return PlateRecognition(**vars(result))
        return result

    invoker = MagicMock()
    invoker.invoke = AsyncMock(side_effect=invoke)
    invoker.extract_plate_text = AsyncMock(return_value=None)
    invoker.configured = True
    invoker.aclose = AsyncMock()
    return invoker


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def watchlist(memory_store) -> WatchlistStore:
    return WatchlistStore(memory_store)


@pytest.fixture
def alert_aggregator() -> AlertAggregator:
    return AlertAggregator(capacity=50)


@pytest.fixture
def detection_log(memory_store) -> DetectionLog:
    return DetectionLog(memory_store, limit=500)


@pytest.fixture
def invoker_factory():
    """Build a mock invoker with some canned results overridden."""
    return make_invoker


@pytest.fixture
def mock_invoker() -> MagicMock:
    return make_invoker()


@pytest.fixture
def detection_service(mock_invoker, watchlist, alert_aggregator, detection_log) -> DetectionService:
    return DetectionService(
        invoker=mock_invoker,
        watchlist=watchlist,
        alerts=alert_aggregator,
        detection_log=detection_log,
    )


@pytest.fixture
def frame_source() -> FakeFrameSource:
    return FakeFrameSource()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create sample image bytes for testing."""
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    # White rectangle standing in for a plate
    cv2.rectangle(img, (100, 150), (300, 200), (255, 255, 255), -1)
    _, buffer = cv2.imencode(".png", img)
    return buffer.tobytes()


@pytest.fixture
def clean_settings(monkeypatch) -> Iterator[None]:
    """Isolate settings from the developer's environment and .env file."""
    for name in ("GEMINI_API_KEY", "API_KEY", "WATCHLIST_CSV_PATH", "STORAGE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    get_settings.cache_clear()
    reset_rate_limiter()


@pytest.fixture
def services(memory_store, mock_invoker, frame_source) -> Services:
    """Service graph over in-memory storage, a mocked model and a fake camera."""
    watchlist = WatchlistStore(memory_store)
    alerts = AlertAggregator(capacity=50)
    detection_log = DetectionLog(memory_store, limit=500)
    detection = DetectionService(
        invoker=mock_invoker,
        watchlist=watchlist,
        alerts=alerts,
        detection_log=detection_log,
        idempotency=IdempotencyService(window_seconds=5),
    )
    capture = CaptureManager(
        service=detection,
        source_factory=lambda: frame_source,
        interval_seconds=60,
    )
    return Services(
        store=memory_store,
        invoker=mock_invoker,
        watchlist=watchlist,
        alerts=alerts,
        detection_log=detection_log,
        detection=detection,
        capture=capture,
    )


@pytest.fixture
def test_client(clean_settings, services) -> Iterator[TestClient]:
    """Create test client with injected services."""
    from borderwatch.main import create_app

    app = create_app(services)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def camera_offline() -> FakeFrameSource:
    return FakeFrameSource(error=CaptureError("Camera 0 is unavailable or access was denied"))
