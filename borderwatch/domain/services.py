"""
Domain services for plate normalization, severity policy and alert text.

These services contain pure business logic with no infrastructure
dependencies. They can be easily unit tested.
"""

import re
from dataclasses import asdict, dataclass
from typing import ClassVar

from borderwatch.domain.models import (
    Alert,
    AlertType,
    DetectionKind,
    DetectionResult,
    ObjectDetection,
    PlateRecognition,
    Severity,
    ThreatAssessment,
)

# Confidence applied when the model omits the field
PLATE_DEFAULT_CONFIDENCE = 0.7
OBJECT_DEFAULT_CONFIDENCE = 0.5
THREAT_DEFAULT_CONFIDENCE = 0.75
NO_THREAT_DEFAULT_CONFIDENCE = 0.25


def default_threat_confidence(is_threat: bool) -> float:
    """Confidence tier used when a threat assessment carries no score."""
    return THREAT_DEFAULT_CONFIDENCE if is_threat else NO_THREAT_DEFAULT_CONFIDENCE


class InvalidPlateError(ValueError):
    """Raised when a plate is empty after normalization."""

    pass


@dataclass
class PlateNormalizer:
    """
    Canonicalizes plate text for comparison.

    Whitespace and separator punctuation are removed and letters are
    upper-cased. The function is total: empty or None input gives "".

    Example:
        >>> PlateNormalizer().normalize(" akh-123 b ")
        'AKH123B'
    """

    SEPARATORS: ClassVar[re.Pattern[str]] = re.compile(r"[\s\-._/·]+")

    def normalize(self, raw: str | None) -> str:
        """
        Normalize raw plate text.

        Args:
            raw: Plate text as typed by an operator or read by the model.

        Returns:
            str: Normalized plate, possibly empty.
        """
        if not raw:
            return ""
        return self.SEPARATORS.sub("", raw).upper().strip()

    def same_plate(self, a: str | None, b: str | None) -> bool:
        """Two plates are equal when their normalized forms are."""
        return self.normalize(a) == self.normalize(b)

    def require(self, raw: str | None) -> str:
        """
        Normalize and reject empty results.

        Raises:
            InvalidPlateError: If nothing is left after normalization.
        """
        plate = self.normalize(raw)
        if not plate:
            raise InvalidPlateError("Plate required")
        return plate


@dataclass
class SeverityClassifier:
    """
    Assigns a severity to each detection result.

    Plates are HIGH when of interest, otherwise LOW. Object scans take the
    reported threat level, escalated to at least HIGH when any label names
    a weapon or contraband. Faces are CRITICAL when a threat, otherwise LOW.

    Example:
        >>> classifier = SeverityClassifier()
        >>> classifier.classify_objects(ObjectDetection(["handgun"], Severity.LOW))
        <Severity.HIGH: 'High'>
    """

    ESCALATION_KEYWORDS: ClassVar[tuple[str, ...]] = (
        "gun",
        "pistol",
        "revolver",
        "rifle",
        "firearm",
        "weapon",
        "knife",
        "knives",
        "machete",
        "ammunition",
        "ammo",
        "bullet",
        "cartridge",
        "explosive",
        "grenade",
        "bomb",
        "detonator",
        "drug",
        "narcotic",
        "cocaine",
        "heroin",
        "methamphetamine",
        "contraband",
    )

    def __post_init__(self) -> None:
        # Keywords may close a compound word ("handgun") but must end it,
        # so "burgundy" does not match "gun".
        alternatives = "|".join(re.escape(k) for k in self.ESCALATION_KEYWORDS)
        self._keyword_pattern = re.compile(
            rf"\b\w*(?:{alternatives})(?:s|es)?\b",
            re.IGNORECASE,
        )

    def matched_keywords(self, labels: list[str]) -> list[str]:
        """Labels that trigger the weapon/contraband escalation."""
        return [label for label in labels if self._keyword_pattern.search(label)]

    def classify_plate(self, result: PlateRecognition) -> Severity:
        return Severity.HIGH if result.is_of_interest else Severity.LOW

    def classify_objects(self, result: ObjectDetection) -> Severity:
        severity = result.threat_level
        if self.matched_keywords(result.objects_detected) and severity.rank < Severity.HIGH.rank:
            return Severity.HIGH
        return severity

    def classify_threat(self, result: ThreatAssessment) -> Severity:
        return Severity.CRITICAL if result.is_threat else Severity.LOW

    def classify(self, kind: DetectionKind, result: DetectionResult) -> Severity:
        """Dispatch on detection kind."""
        if kind == DetectionKind.PLATE:
            return self.classify_plate(result)
        if kind == DetectionKind.OBJECTS:
            return self.classify_objects(result)
        return self.classify_threat(result)


def result_as_dict(result: DetectionResult) -> dict:
    """Plain-data view of a detection result, with enums as their values."""
    data = asdict(result)
    if isinstance(result, ObjectDetection):
        data["threat_level"] = result.threat_level.value
    return data


def _percent(score: float | None) -> str:
    return f"{round((score or 0) * 100)}%"


@dataclass
class AlertBuilder:
    """Formats dashboard alerts for each detection kind."""

    def build(
        self,
        kind: DetectionKind,
        result: DetectionResult,
        severity: Severity,
    ) -> Alert:
        """
        Create an alert for a completed detection.

        Args:
            kind: Detection flow that produced the result.
            result: Typed detection result.
            severity: Severity assigned by the classifier.

        Returns:
            Alert: New alert carrying the result as plain data.
        """
        if kind == DetectionKind.PLATE:
            title, description = self._plate_text(result)
        elif kind == DetectionKind.OBJECTS:
            title, description = self._objects_text(result, severity)
        else:
            title, description = self._threat_text(result)

        return Alert(
            type=AlertType.for_kind(kind),
            severity=severity,
            title=title,
            description=description,
            data=result_as_dict(result),
        )

    def _plate_text(self, result: PlateRecognition) -> tuple[str, str]:
        status = "Flagged" if result.is_of_interest else "Clear"
        title = f"LPR: {result.plate_number or 'N/A'} {status}"
        reason = (
            f"Reason: {result.reason_for_interest or 'N/A'}. "
            if result.is_of_interest
            else ""
        )
        description = (
            f"Vehicle: {result.vehicle_details or 'N/A'}. "
            f"Country: {result.country_of_origin or 'N/A'}. "
            f"{reason}Confidence: {_percent(result.confidence_score)}"
        )
        return title, description

    def _objects_text(self, result: ObjectDetection, severity: Severity) -> tuple[str, str]:
        detected = ", ".join(result.objects_detected) or "None"
        title = f"Vehicle Scan: {severity.value} Threat"
        description = f"Detected: {detected}. Confidence: {_percent(result.confidence_score)}"
        return title, description

    def _threat_text(self, result: ThreatAssessment) -> tuple[str, str]:
        name = result.name or "Unknown"
        if result.is_threat:
            title = f"Potential Threat: {name}"
            fallback = "Matches person of interest criteria."
        else:
            title = f"Individual Cleared: {name}"
            fallback = "No threat indicators found."
        description = f"{result.reason or fallback} Confidence: {_percent(result.confidence_score)}"
        return title, description
