"""
Flat-file key-value store.

Each key is a newline-delimited text file, one entry per line, so a
single-column ``suspicious.csv`` can be dropped in as the watchlist.
Writes replace the whole file atomically.
"""

import os
import re
import tempfile
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from borderwatch.core.logging import get_logger
from borderwatch.domain.ports import KeyValueStore, StorageError

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


class FlatFileStore(KeyValueStore):
    """
    Stores each key as ``<root>/<key>.txt``.

    Example:
        store = FlatFileStore("./storage")
        await store.set("watchlist", ["AKH123B", "DANGER1"])
    """

    SUFFIX = ".txt"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}{self.SUFFIX}"

    async def get(self, key: str) -> list[str] | None:
        return await run_in_threadpool(self._read, self._path(key))

    async def set(self, key: str, items: list[str]) -> None:
        if any("\n" in item for item in items):
            raise ValueError("Items must not contain newlines")
        await run_in_threadpool(self._write, self._path(key), items)

    async def keys(self) -> list[str]:
        return await run_in_threadpool(self._list_keys)

    def _read(self, path: Path) -> list[str] | None:
        try:
            if not path.exists():
                return None
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("flat_file_read_failed", path=str(path), error=str(e))
            raise StorageError(f"Cannot read {path}: {e}") from e
        return [line.strip() for line in content.splitlines() if line.strip()]

    def _write(self, path: Path, items: list[str]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write("\n".join(items))
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error("flat_file_write_failed", path=str(path), error=str(e))
            raise StorageError(f"Cannot write {path}: {e}") from e

    def _list_keys(self) -> list[str]:
        try:
            if not self.root.exists():
                return []
            return sorted(p.stem for p in self.root.glob(f"*{self.SUFFIX}"))
        except OSError as e:
            raise StorageError(f"Cannot list {self.root}: {e}") from e
