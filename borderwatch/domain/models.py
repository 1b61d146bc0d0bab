"""
Domain models for the BorderWatch checkpoint service.

These are pure domain objects with no infrastructure dependencies.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Triage level attached to every alert."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        """Ordinal used to compare severities."""
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str | None) -> "Severity":
        """
        Map a free-form threat level onto a severity.

        Matching is case-insensitive; anything unrecognised is LOW.
        """
        if not value:
            return cls.LOW
        return _SEVERITY_LOOKUP.get(value.strip().lower(), cls.LOW)


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}

_SEVERITY_LOOKUP = {s.value.lower(): s for s in Severity}


class DetectionKind(str, Enum):
    """Which instruction the image-understanding service is asked to run."""

    PLATE = "plate"
    OBJECTS = "objects"
    THREAT = "threat"


class AlertType(str, Enum):
    """Origin of an alert, as shown on the dashboard."""

    OBJECT_DETECTION = "Object Detection"
    THREAT_IDENTIFICATION = "Threat Identification"
    LICENSE_PLATE_RECOGNITION = "License Plate Recognition"

    @classmethod
    def for_kind(cls, kind: DetectionKind) -> "AlertType":
        return {
            DetectionKind.PLATE: cls.LICENSE_PLATE_RECOGNITION,
            DetectionKind.OBJECTS: cls.OBJECT_DETECTION,
            DetectionKind.THREAT: cls.THREAT_IDENTIFICATION,
        }[kind]


@dataclass
class PlateRecognition:
    """
    Result of a license-plate recognition call.

    Attributes:
        plate_number: Plate text. Normalized once the pipeline has run.
        vehicle_details: Make, model and colour if identifiable.
        country_of_origin: Suspected issuing country.
        is_of_interest: Whether the plate is on a watchlist.
        reason_for_interest: Why the plate is of interest.
        confidence_score: Confidence of the plate extraction (0.0 to 1.0).
    """

    plate_number: str
    is_of_interest: bool = False
    confidence_score: float = 0.7
    vehicle_details: str | None = None
    country_of_origin: str | None = None
    reason_for_interest: str | None = None


@dataclass
class ObjectDetection:
    """Objects found inside a vehicle and the reported threat level."""

    objects_detected: list[str] = field(default_factory=list)
    threat_level: Severity = Severity.LOW
    confidence_score: float = 0.5


@dataclass
class ThreatAssessment:
    """Facial threat identification result."""

    is_threat: bool
    name: str = "Unknown"
    reason: str = ""
    confidence_score: float | None = None


DetectionResult = PlateRecognition | ObjectDetection | ThreatAssessment


@dataclass
class Alert:
    """
    An entry in the dashboard alert feed.

    Attributes:
        type: Which detection flow produced the alert.
        severity: Triage level.
        title: One-line summary.
        description: Human-readable details.
        data: The raw detection result as a plain dict.
        timestamp: When the alert was created.
        id: Unique identifier.
    """

    type: AlertType
    severity: Severity
    title: str
    description: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class DetectionRecord:
    """A persisted plate sighting for the detections log."""

    plate: str
    severity: Severity
    ts: datetime = field(default_factory=utcnow)


@dataclass
class DetectionOutcome:
    """
    What a detection call produced.

    ``alert`` is None when nothing usable came back, e.g. no plate was read.
    """

    kind: DetectionKind
    result: DetectionResult
    alert: Alert | None = None
    cached: bool = False
