"""
Detection use case.

Orchestrates one detection call end to end:
1. Idempotency lookup on the image
2. External image-understanding call, skipped on a cache hit
3. Plate normalization and local watchlist screening
4. Severity classification
5. Alert creation
6. Alert feed and detection log updates

Steps 1-5 are side-effect free (``analyze``); step 6 is ``apply``. Live
capture relies on the split to drop results that complete after the
operator stopped the session.
"""

from dataclasses import replace

from borderwatch.application.alerts import AlertAggregator
from borderwatch.application.detection_log import DetectionLog
from borderwatch.application.idempotency import IdempotencyService
from borderwatch.application.watchlist import WatchlistStore
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import (
    DetectionKind,
    DetectionOutcome,
    DetectionResult,
    PlateRecognition,
)
from borderwatch.domain.services import (
    AlertBuilder,
    PlateNormalizer,
    SeverityClassifier,
)
from borderwatch.infrastructure.ai import GeminiInvoker, InvocationError

logger = get_logger(__name__)

WATCHLIST_MATCH_REASON = "Plate is on the local watchlist."


class DetectionService:
    """
    Runs detections and feeds their alerts to the dashboard.

    Example:
        service = DetectionService(invoker, watchlist, aggregator, detection_log)
        outcome = await service.recognize_plate(image_b64)
        if outcome.alert:
            print(outcome.alert.title)
    """

    def __init__(
        self,
        invoker: GeminiInvoker,
        watchlist: WatchlistStore,
        alerts: AlertAggregator,
        detection_log: DetectionLog,
        idempotency: IdempotencyService | None = None,
        normalizer: PlateNormalizer | None = None,
        classifier: SeverityClassifier | None = None,
        alert_builder: AlertBuilder | None = None,
        default_environmental_conditions: str = "Unknown",
    ):
        """
        Initialize detection service.

        Args:
            invoker: Client for the image-understanding service.
            watchlist: Local watchlist used to screen plates.
            alerts: Alert feed receiving new alerts.
            detection_log: Persisted plate sightings.
            idempotency: Optional repeat-image cache.
            normalizer: Optional custom plate normalizer.
            classifier: Optional custom severity policy.
            alert_builder: Optional custom alert formatter.
            default_environmental_conditions: Used when an object scan
                gives no conditions.
        """
        self._invoker = invoker
        self._watchlist = watchlist
        self._alerts = alerts
        self._detection_log = detection_log
        self._idempotency = idempotency or IdempotencyService(window_seconds=0)
        self._normalizer = normalizer or PlateNormalizer()
        self._classifier = classifier or SeverityClassifier()
        self._alert_builder = alert_builder or AlertBuilder()
        self._default_conditions = default_environmental_conditions

    async def recognize_plate(self, image_base64: str) -> DetectionOutcome:
        """Read a plate and screen it against the watchlist."""
        return await self.run(DetectionKind.PLATE, image_base64)

    async def detect_objects(
        self,
        image_base64: str,
        environmental_conditions: str | None = None,
    ) -> DetectionOutcome:
        """Scan a vehicle interior for contraband."""
        return await self.run(
            DetectionKind.OBJECTS,
            image_base64,
            environmental_conditions=environmental_conditions,
        )

    async def identify_threat(self, image_base64: str) -> DetectionOutcome:
        """Assess a face against person-of-interest criteria."""
        return await self.run(DetectionKind.THREAT, image_base64)

    async def run(
        self,
        kind: DetectionKind,
        image_base64: str,
        environmental_conditions: str | None = None,
    ) -> DetectionOutcome:
        """
        Analyze an image and record the outcome.

        Args:
            kind: Detection flow to run.
            image_base64: JPEG bytes, base64 encoded.
            environmental_conditions: Context for object scans.

        Returns:
            DetectionOutcome: Typed result and the alert, if one was raised.

        Raises:
            InvocationError: If the external call failed. Nothing is recorded.
        """
        outcome = await self.analyze(kind, image_base64, environmental_conditions)
        await self.apply(outcome)
        return outcome

    async def analyze(
        self,
        kind: DetectionKind,
        image_base64: str,
        environmental_conditions: str | None = None,
    ) -> DetectionOutcome:
        """
        Produce an outcome without touching the alert feed or detection log.

        Only the model reply is cached. Watchlist screening, severity and the
        alert are always computed fresh, so a plate added to the watchlist
        after its first sighting is flagged on the next one.

        Raises:
            InvocationError: If the external call failed.
        """
        conditions = environmental_conditions or self._default_conditions
        key_material = image_base64.encode()
        if kind == DetectionKind.OBJECTS:
            key_material += conditions.encode()
        key = self._idempotency.compute_key(key_material, kind.value)

        cached = self._idempotency.lookup(key)
        if cached is not None:
            logger.info("detection_cached", kind=kind.value)
            result = replace(cached)
        else:
            result = await self._invoke(kind, image_base64, conditions)
            self._idempotency.mark_seen(key, replace(result))

        if isinstance(result, PlateRecognition):
            await self._screen_plate(result)
            if not result.plate_number:
                logger.info("no_plate_detected")
                return DetectionOutcome(kind=kind, result=result, cached=cached is not None)

        severity = self._classifier.classify(kind, result)
        alert = self._alert_builder.build(kind, result, severity)

        logger.info(
            "detection_complete",
            kind=kind.value,
            severity=severity.value,
            title=alert.title,
        )

        return DetectionOutcome(kind=kind, result=result, alert=alert, cached=cached is not None)

    async def apply(self, outcome: DetectionOutcome) -> None:
        """Push the outcome's alert to the feed and log plate sightings."""
        if outcome.alert is None:
            return

        self._alerts.add_alert(outcome.alert)

        if isinstance(outcome.result, PlateRecognition):
            await self._detection_log.record(
                outcome.result.plate_number,
                outcome.alert.severity,
            )

    async def _invoke(
        self,
        kind: DetectionKind,
        image_base64: str,
        conditions: str,
    ) -> DetectionResult:
        logger.info("detection_started", kind=kind.value, image_size=len(image_base64))

        try:
            result = await self._invoker.invoke(
                image_base64,
                kind,
                environmental_conditions=conditions,
            )
            if isinstance(result, PlateRecognition) and not self._normalizer.normalize(
                result.plate_number
            ):
                # Structured read came back empty; ask for the bare plate text
                text = await self._invoker.extract_plate_text(image_base64)
                if text:
                    logger.info("plate_text_fallback_used", plate=text)
                    result.plate_number = text
        except InvocationError as e:
            logger.error("detection_failed", kind=kind.value, error=str(e))
            raise

        return result

    async def _screen_plate(self, result: PlateRecognition) -> None:
        result.plate_number = self._normalizer.normalize(result.plate_number)
        if not result.plate_number:
            return

        on_watchlist = await self._watchlist.contains(result.plate_number)
        if on_watchlist:
            logger.warning("watchlist_match", plate=result.plate_number)
            result.is_of_interest = True
            if not result.reason_for_interest:
                result.reason_for_interest = WATCHLIST_MATCH_REASON
