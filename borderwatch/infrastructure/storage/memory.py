"""In-memory key-value store for tests and the ``memory`` backend."""

from borderwatch.domain.ports import KeyValueStore


class InMemoryStore(KeyValueStore):
    """Dict-backed store; contents vanish with the process."""

    def __init__(self, initial: dict[str, list[str]] | None = None):
        self._data: dict[str, list[str]] = {
            key: list(items) for key, items in (initial or {}).items()
        }

    async def get(self, key: str) -> list[str] | None:
        items = self._data.get(key)
        return list(items) if items is not None else None

    async def set(self, key: str, items: list[str]) -> None:
        self._data[key] = list(items)

    async def keys(self) -> list[str]:
        return sorted(self._data)
