"""Domain layer package - business rules and core models."""

from borderwatch.domain.models import (
    Alert,
    AlertType,
    DetectionKind,
    DetectionOutcome,
    DetectionRecord,
    DetectionResult,
    ObjectDetection,
    PlateRecognition,
    Severity,
    ThreatAssessment,
)
from borderwatch.domain.ports import FrameSource, KeyValueStore, StorageError
from borderwatch.domain.services import (
    AlertBuilder,
    InvalidPlateError,
    PlateNormalizer,
    SeverityClassifier,
    default_threat_confidence,
    result_as_dict,
)

__all__ = [
    # Models
    "Alert",
    "AlertType",
    "DetectionKind",
    "DetectionOutcome",
    "DetectionRecord",
    "DetectionResult",
    "ObjectDetection",
    "PlateRecognition",
    "Severity",
    "ThreatAssessment",
    # Ports
    "FrameSource",
    "KeyValueStore",
    "StorageError",
    # Services
    "AlertBuilder",
    "InvalidPlateError",
    "PlateNormalizer",
    "SeverityClassifier",
    "default_threat_confidence",
    "result_as_dict",
]
