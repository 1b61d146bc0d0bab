"""
Watchlist of suspicious plates.

The store is the only writer of the ``watchlist`` key. Storage failures
never propagate: the operator gets an empty list and a warning is logged.
"""

from borderwatch.core.logging import get_logger
from borderwatch.domain.ports import KeyValueStore, StorageError
from borderwatch.domain.services import PlateNormalizer

logger = get_logger(__name__)

WATCHLIST_KEY = "watchlist"


class WatchlistStore:
    """
    Set of normalized plates, newest first.

    Example:
        watchlist = WatchlistStore(FlatFileStore("./storage"))
        await watchlist.add("akh 123b")
        await watchlist.contains("AKH-123B")  # True
    """

    def __init__(
        self,
        store: KeyValueStore,
        normalizer: PlateNormalizer | None = None,
    ):
        """
        Initialize the watchlist.

        Args:
            store: Persistence backend.
            normalizer: Plate normalizer; a default one is created if omitted.
        """
        self._store = store
        self._normalizer = normalizer or PlateNormalizer()

    async def list_plates(self) -> list[str]:
        """
        Current watchlist, newest first.

        Returns:
            list: Normalized plates, or [] if storage is unavailable.
        """
        try:
            return await self._load()
        except StorageError as e:
            logger.warning("watchlist_unavailable", operation="list", error=str(e))
            return []

    async def add(self, plate: str) -> list[str]:
        """
        Add a plate if it is not already present.

        Args:
            plate: Raw plate text.

        Returns:
            list: Updated watchlist, or [] if storage is unavailable.

        Raises:
            InvalidPlateError: If the plate is empty after normalization.
        """
        normalized = self._normalizer.require(plate)
        try:
            plates = await self._load()
            if normalized in plates:
                return plates
            plates.insert(0, normalized)
            await self._store.set(WATCHLIST_KEY, plates)
        except StorageError as e:
            logger.warning("watchlist_unavailable", operation="add", error=str(e))
            return []

        logger.info("watchlist_plate_added", plate=normalized, size=len(plates))
        return plates

    async def remove(self, plate: str) -> list[str]:
        """
        Remove every entry equal to ``plate`` by normalized form.

        Raises:
            InvalidPlateError: If the plate is empty after normalization.
        """
        normalized = self._normalizer.require(plate)
        try:
            plates = await self._load()
            remaining = [p for p in plates if p != normalized]
            await self._store.set(WATCHLIST_KEY, remaining)
        except StorageError as e:
            logger.warning("watchlist_unavailable", operation="remove", error=str(e))
            return []

        if len(remaining) != len(plates):
            logger.info("watchlist_plate_removed", plate=normalized, size=len(remaining))
        return remaining

    async def contains(self, plate: str | None) -> bool:
        """Membership test by normalized form; False when storage is down."""
        normalized = self._normalizer.normalize(plate)
        if not normalized:
            return False
        return normalized in await self.list_plates()

    async def merge(self, plates: list[str]) -> list[str]:
        """
        Add many plates with a single write.

        New plates go in front, keeping their given order. Empty entries are
        skipped.

        Returns:
            list: Updated watchlist, or [] if storage is unavailable.
        """
        try:
            current = await self._load()
            known = set(current)
            added: list[str] = []
            for raw in plates:
                normalized = self._normalizer.normalize(raw)
                if normalized and normalized not in known:
                    known.add(normalized)
                    added.append(normalized)
            if not added:
                return current
            merged = added + current
            await self._store.set(WATCHLIST_KEY, merged)
        except StorageError as e:
            logger.warning("watchlist_unavailable", operation="merge", error=str(e))
            return []

        logger.info("watchlist_merged", added=len(added), size=len(merged))
        return merged

    async def _load(self) -> list[str]:
        items = await self._store.get(WATCHLIST_KEY) or []
        # Stored lists may be hand-edited; re-normalize and de-duplicate
        seen: set[str] = set()
        plates: list[str] = []
        for item in items:
            normalized = self._normalizer.normalize(item)
            if normalized and normalized not in seen:
                seen.add(normalized)
                plates.append(normalized)
        return plates
