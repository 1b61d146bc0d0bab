"""
Detection API routes.

Each endpoint takes an uploaded image, runs one detection flow and returns
the typed result together with the alert it raised.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from borderwatch.api.deps import ApiKeyAuth, Detection, DetectionLogDep, RateLimited
from borderwatch.api.routes.alerts import AlertResponse
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import DetectionKind, DetectionOutcome, Severity
from borderwatch.domain.services import result_as_dict
from borderwatch.infrastructure.ai import InvocationError
from borderwatch.infrastructure.capture import ImageDecodeError, prepare_upload

logger = get_logger(__name__)

router = APIRouter(prefix="/detections", tags=["detections"])

_RESPONSES = {
    400: {"description": "Invalid image"},
    401: {"description": "Invalid API key"},
    429: {"description": "Rate limit exceeded"},
    502: {"description": "Detection failed"},
}


class DetectionResponse(BaseModel):
    """Outcome of one detection call."""

    kind: DetectionKind
    result: dict[str, Any] = Field(description="Typed detection result")
    alert: AlertResponse | None = Field(
        default=None,
        description="Alert raised, or null when nothing usable was detected",
    )
    cached: bool = Field(
        default=False,
        description="True when the model reply for a recent identical image was reused",
    )

    @classmethod
    def from_domain(cls, outcome: DetectionOutcome) -> "DetectionResponse":
        return cls(
            kind=outcome.kind,
            result=result_as_dict(outcome.result),
            alert=AlertResponse.from_domain(outcome.alert) if outcome.alert else None,
            cached=outcome.cached,
        )


class DetectionRecordResponse(BaseModel):
    plate: str
    severity: Severity
    ts: datetime


class DetectionLogResponse(BaseModel):
    records: list[DetectionRecordResponse]
    count: int


async def _read_upload(image: UploadFile) -> str:
    image_bytes = await image.read()
    if len(image_bytes) == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty image file",
        )

    try:
        return await run_in_threadpool(prepare_upload, image_bytes)
    except ImageDecodeError as e:
        logger.warning("upload_rejected", filename=image.filename, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid image file",
        )


async def _run(
    service: Detection,
    kind: DetectionKind,
    image: UploadFile,
    environmental_conditions: str | None = None,
) -> DetectionResponse:
    image_base64 = await _read_upload(image)
    try:
        outcome = await service.run(
            kind,
            image_base64,
            environmental_conditions=environmental_conditions,
        )
    except InvocationError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Detection failed",
        )
    return DetectionResponse.from_domain(outcome)


@router.post(
    "/plate",
    response_model=DetectionResponse,
    summary="Recognize license plate",
    description="Read the plate and screen it against the watchlist.",
    responses=_RESPONSES,
)
async def recognize_plate(
    image: Annotated[UploadFile, File(description="Image containing a vehicle plate")],
    service: Detection,
    _: ApiKeyAuth,
    __: RateLimited,
) -> DetectionResponse:
    return await _run(service, DetectionKind.PLATE, image)


@router.post(
    "/objects",
    response_model=DetectionResponse,
    summary="Scan vehicle for contraband",
    responses=_RESPONSES,
)
async def detect_objects(
    image: Annotated[UploadFile, File(description="Image of the vehicle interior")],
    service: Detection,
    _: ApiKeyAuth,
    __: RateLimited,
    environmental_conditions: Annotated[
        str | None,
        Form(description="Lighting, weather and similar context", examples=["Night, rain"]),
    ] = None,
) -> DetectionResponse:
    return await _run(
        service,
        DetectionKind.OBJECTS,
        image,
        environmental_conditions=environmental_conditions,
    )


@router.post(
    "/threat",
    response_model=DetectionResponse,
    summary="Identify person of interest",
    responses=_RESPONSES,
)
async def identify_threat(
    image: Annotated[UploadFile, File(description="Image of a face")],
    service: Detection,
    _: ApiKeyAuth,
    __: RateLimited,
) -> DetectionResponse:
    return await _run(service, DetectionKind.THREAT, image)


@router.get(
    "/log",
    response_model=DetectionLogResponse,
    summary="Plate detection log",
)
async def detection_log(
    log: DetectionLogDep,
    limit: int | None = Query(default=None, ge=0),
) -> DetectionLogResponse:
    """Persisted plate sightings, newest first."""
    records = await log.list_records(limit)
    return DetectionLogResponse(
        records=[
            DetectionRecordResponse(plate=r.plate, severity=r.severity, ts=r.ts)
            for r in records
        ],
        count=len(records),
    )
