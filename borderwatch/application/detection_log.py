"""
Persisted log of plate sightings.

Each record is stored as one JSON line under the ``detections`` key,
newest first, bounded to a configurable length.
"""

import json
from datetime import datetime

from borderwatch.core.logging import get_logger
from borderwatch.domain.models import DetectionRecord, Severity
from borderwatch.domain.ports import KeyValueStore, StorageError

logger = get_logger(__name__)

DETECTIONS_KEY = "detections"


class DetectionLog:
    """Append-to-front log of ``DetectionRecord`` entries."""

    def __init__(self, store: KeyValueStore, limit: int = 500):
        self._store = store
        self.limit = limit

    async def record(self, plate: str, severity: Severity) -> DetectionRecord:
        """
        Store a sighting.

        A storage failure is logged and the record is still returned.
        """
        record = DetectionRecord(plate=plate, severity=severity)
        try:
            items = await self._store.get(DETECTIONS_KEY) or []
            items.insert(0, self._encode(record))
            await self._store.set(DETECTIONS_KEY, items[: self.limit])
        except StorageError as e:
            logger.warning("detection_log_unavailable", operation="record", error=str(e))
        return record

    async def list_records(self, limit: int | None = None) -> list[DetectionRecord]:
        """Sightings newest first; [] if storage is unavailable."""
        try:
            items = await self._store.get(DETECTIONS_KEY) or []
        except StorageError as e:
            logger.warning("detection_log_unavailable", operation="list", error=str(e))
            return []

        records = []
        for item in items[:limit] if limit is not None else items:
            record = self._decode(item)
            if record is not None:
                records.append(record)
        return records

    def _encode(self, record: DetectionRecord) -> str:
        return json.dumps(
            {
                "plate": record.plate,
                "severity": record.severity.value,
                "ts": record.ts.isoformat(),
            },
            separators=(",", ":"),
        )

    def _decode(self, item: str) -> DetectionRecord | None:
        try:
            data = json.loads(item)
            return DetectionRecord(
                plate=data["plate"],
                severity=Severity(data["severity"]),
                ts=datetime.fromisoformat(data["ts"]),
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("detection_record_corrupt", item=item[:100])
            return None
