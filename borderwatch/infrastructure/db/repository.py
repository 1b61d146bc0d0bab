"""
Repository and key-value store backed by the ``kv_entries`` table.
"""

import json

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from borderwatch.core.logging import get_logger
from borderwatch.domain.ports import KeyValueStore, StorageError
from borderwatch.infrastructure.db.models import KeyValueEntryDB

logger = get_logger(__name__)


class KeyValueRepository:
    """
    Data access for named JSON arrays within one session.

    The caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def get(self, key: str) -> list[str] | None:
        """
        Fetch and decode the list stored under ``key``.

        Returns:
            list: Stored items, or None if absent.
        """
        stmt = select(KeyValueEntryDB).where(KeyValueEntryDB.key == key)
        result = await self._session.execute(stmt)
        entry = result.scalar_one_or_none()
        if entry is None:
            return None
        return self._decode(entry)

    async def upsert(self, key: str, items: list[str]) -> None:
        """Insert or overwrite the list under ``key``."""
        entry = await self._session.get(KeyValueEntryDB, key)
        encoded = json.dumps(items)
        if entry is None:
            self._session.add(KeyValueEntryDB(key=key, value=encoded))
        else:
            entry.value = encoded
        await self._session.flush()

    async def list_keys(self) -> list[str]:
        stmt = select(KeyValueEntryDB.key).order_by(KeyValueEntryDB.key)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _decode(self, entry: KeyValueEntryDB) -> list[str]:
        try:
            items = json.loads(entry.value)
        except json.JSONDecodeError:
            logger.warning("kv_entry_corrupt", key=entry.key)
            return []
        if not isinstance(items, list):
            logger.warning("kv_entry_not_a_list", key=entry.key)
            return []
        return [str(item) for item in items]


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value port implementation that opens a short session per call.

    Example:
        store = SqlKeyValueStore(get_session_factory())
        await store.set("watchlist", ["AKH123B"])
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> list[str] | None:
        try:
            async with self._session_factory() as session:
                return await KeyValueRepository(session).get(key)
        except SQLAlchemyError as e:
            logger.error("kv_read_failed", key=key, error=str(e))
            raise StorageError(f"Cannot read {key}: {e}") from e

    async def set(self, key: str, items: list[str]) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await KeyValueRepository(session).upsert(key, items)
        except SQLAlchemyError as e:
            logger.error("kv_write_failed", key=key, error=str(e))
            raise StorageError(f"Cannot write {key}: {e}") from e

    async def keys(self) -> list[str]:
        try:
            async with self._session_factory() as session:
                return await KeyValueRepository(session).list_keys()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot list keys: {e}") from e
