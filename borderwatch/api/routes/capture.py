"""
Live capture API routes.

Starts and stops the periodic webcam loop for one detection kind.
"""

from datetime import datetime

from fastapi import APIRouter, Body, HTTPException, status
from pydantic import BaseModel, Field

from borderwatch.api.deps import ApiKeyAuth, Capture
from borderwatch.api.routes.alerts import AlertResponse
from borderwatch.application.capture import CaptureStatus
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import DetectionKind
from borderwatch.infrastructure.capture import CaptureError

logger = get_logger(__name__)

router = APIRouter(prefix="/capture", tags=["capture"])


class CaptureStartRequest(BaseModel):
    environmental_conditions: str | None = Field(
        default=None,
        description="Context for object scans",
    )


class CaptureStatusResponse(BaseModel):
    """State of the live session for one kind."""

    kind: DetectionKind
    running: bool
    busy: bool = Field(description="A detection is in flight")
    interval_seconds: float
    ticks: int = 0
    skipped: int = Field(default=0, description="Ticks skipped while busy")
    applied: int = 0
    discarded: int = Field(default=0, description="Results dropped after stop")
    errors: int = 0
    started_at: datetime | None = None
    last_alert: AlertResponse | None = None
    last_error: str | None = None

    @classmethod
    def from_status(cls, capture_status: CaptureStatus) -> "CaptureStatusResponse":
        return cls(
            kind=capture_status.kind,
            running=capture_status.running,
            busy=capture_status.busy,
            interval_seconds=capture_status.interval_seconds,
            ticks=capture_status.ticks,
            skipped=capture_status.skipped,
            applied=capture_status.applied,
            discarded=capture_status.discarded,
            errors=capture_status.errors,
            started_at=capture_status.started_at,
            last_alert=(
                AlertResponse.from_domain(capture_status.last_alert)
                if capture_status.last_alert
                else None
            ),
            last_error=capture_status.last_error,
        )


def _idle(kind: DetectionKind, capture: Capture) -> CaptureStatusResponse:
    return CaptureStatusResponse(
        kind=kind,
        running=False,
        busy=False,
        interval_seconds=capture.interval_seconds,
    )


@router.post(
    "/{kind}/start",
    response_model=CaptureStatusResponse,
    summary="Start live capture",
    responses={503: {"description": "Camera unavailable"}},
)
async def start_capture(
    kind: DetectionKind,
    capture: Capture,
    _: ApiKeyAuth,
    request: CaptureStartRequest | None = Body(default=None),
) -> CaptureStatusResponse:
    conditions = request.environmental_conditions if request else None
    try:
        session = await capture.start(kind, environmental_conditions=conditions)
    except CaptureError as e:
        logger.warning("capture_start_failed", kind=kind.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Camera unavailable",
        )
    return CaptureStatusResponse.from_status(session.status())


@router.post(
    "/{kind}/stop",
    response_model=CaptureStatusResponse,
    summary="Stop live capture",
)
async def stop_capture(
    kind: DetectionKind,
    capture: Capture,
    _: ApiKeyAuth,
) -> CaptureStatusResponse:
    session = await capture.stop(kind)
    if session is None:
        return _idle(kind, capture)
    return CaptureStatusResponse.from_status(session.status())


@router.get(
    "/{kind}",
    response_model=CaptureStatusResponse,
    summary="Live capture status",
)
async def capture_status(kind: DetectionKind, capture: Capture) -> CaptureStatusResponse:
    current = capture.status(kind)
    if current is None:
        return _idle(kind, capture)
    return CaptureStatusResponse.from_status(current)
