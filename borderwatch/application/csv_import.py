"""
CSV ingestion of suspicious plates.

Only the first column of each row is used. Parse problems are logged and
the rows read so far are kept; they are never raised to the operator.
"""

import csv
import io
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from borderwatch.application.watchlist import WatchlistStore
from borderwatch.core.logging import get_logger
from borderwatch.domain.services import PlateNormalizer

logger = get_logger(__name__)

_HEADER_NAMES = {
    "plate",
    "plates",
    "plate_number",
    "platenumber",
    "number_plate",
    "licence_plate",
    "license_plate",
}


def parse_plate_csv(content: str | bytes, normalizer: PlateNormalizer | None = None) -> list[str]:
    """
    Extract normalized plates from CSV text.

    Args:
        content: CSV text or raw bytes (UTF-8, BOM tolerated).
        normalizer: Plate normalizer to apply.

    Returns:
        list: Unique normalized plates in file order.
    """
    normalizer = normalizer or PlateNormalizer()

    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("csv_decode_failed", error=str(e))
            return []

    plates: list[str] = []
    seen: set[str] = set()
    reader = csv.reader(io.StringIO(content))
    try:
        for row in reader:
            if not row:
                continue
            first = row[0].strip()
            if reader.line_num == 1 and first.lower() in _HEADER_NAMES:
                continue
            plate = normalizer.normalize(first)
            if plate and plate not in seen:
                seen.add(plate)
                plates.append(plate)
    except csv.Error as e:
        logger.warning("csv_parse_failed", line=reader.line_num, error=str(e))

    return plates


async def import_plate_csv(
    source: str | Path | bytes,
    watchlist: WatchlistStore,
) -> tuple[int, list[str]]:
    """
    Merge a CSV of plates into the watchlist.

    Args:
        source: Path to a CSV file, or uploaded CSV bytes.
        watchlist: Target watchlist.

    Returns:
        tuple: Number of plates parsed, and the updated watchlist.
    """
    if isinstance(source, bytes):
        content: str | bytes = source
    else:
        path = Path(source)
        try:
            content = await run_in_threadpool(path.read_bytes)
        except OSError as e:
            logger.warning("csv_read_failed", path=str(path), error=str(e))
            return 0, await watchlist.list_plates()

    plates = parse_plate_csv(content)
    updated = await watchlist.merge(plates)
    logger.info("csv_imported", parsed=len(plates), size=len(updated))
    return len(plates), updated
