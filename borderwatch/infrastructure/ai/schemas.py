"""
Wire schemas for model replies.

The model is only asked to follow a schema, so every field is optional
here and defaults are filled in when converting to domain objects.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from borderwatch.domain.models import (
    ObjectDetection,
    PlateRecognition,
    Severity,
    ThreatAssessment,
)
from borderwatch.domain.services import (
    OBJECT_DEFAULT_CONFIDENCE,
    PLATE_DEFAULT_CONFIDENCE,
    default_threat_confidence,
)


def _clamp(score: float) -> float:
    return min(1.0, max(0.0, score))


class _ModelReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    confidence_score: float | None = Field(default=None, alias="confidenceScore")

    @field_validator("confidence_score", mode="before")
    @classmethod
    def coerce_confidence(cls, v):
        if v is None or v == "":
            return None
        score = float(v)
        # Some replies use percentages
        if 1.0 < score <= 100.0:
            score = score / 100.0
        return _clamp(score)


class PlateRecognitionReply(_ModelReply):
    """Reply to the plate recognition instruction."""

    plate_number: str | None = Field(default=None, alias="plateNumber")
    vehicle_details: str | None = Field(default=None, alias="vehicleDetails")
    country_of_origin: str | None = Field(default=None, alias="countryOfOrigin")
    is_of_interest: bool | None = Field(default=False, alias="isOfInterest")
    reason_for_interest: str | None = Field(default=None, alias="reasonForInterest")

    def to_domain(self) -> PlateRecognition:
        return PlateRecognition(
            plate_number=self.plate_number or "",
            vehicle_details=self.vehicle_details or None,
            country_of_origin=self.country_of_origin or None,
            is_of_interest=bool(self.is_of_interest),
            reason_for_interest=self.reason_for_interest or None,
            confidence_score=(
                self.confidence_score
                if self.confidence_score is not None
                else PLATE_DEFAULT_CONFIDENCE
            ),
        )


class ObjectDetectionReply(_ModelReply):
    """Reply to the object detection instruction."""

    objects_detected: list[str] = Field(default_factory=list, alias="objectsDetected")
    threat_level: str | None = Field(default=None, alias="threatLevel")

    @field_validator("objects_detected", mode="before")
    @classmethod
    def split_label_string(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [label.strip() for label in v.split(",") if label.strip()]
        return v

    def to_domain(self) -> ObjectDetection:
        return ObjectDetection(
            objects_detected=list(self.objects_detected),
            threat_level=Severity.parse(self.threat_level),
            confidence_score=(
                self.confidence_score
                if self.confidence_score is not None
                else OBJECT_DEFAULT_CONFIDENCE
            ),
        )


class ThreatAssessmentReply(_ModelReply):
    """Reply to the threat identification instruction."""

    is_threat: bool | None = Field(default=False, alias="isThreat")
    name: str | None = None
    reason: str | None = None

    def to_domain(self) -> ThreatAssessment:
        return ThreatAssessment(
            is_threat=bool(self.is_threat),
            name=self.name or "Unknown",
            reason=self.reason or "",
            confidence_score=(
                self.confidence_score
                if self.confidence_score is not None
                else default_threat_confidence(bool(self.is_threat))
            ),
        )
