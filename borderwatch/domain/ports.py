"""
Interfaces the application layer depends on.

Infrastructure provides the implementations; tests provide fakes.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a persistence backend cannot be read or written."""

    pass


class KeyValueStore(ABC):
    """
    Persistence port: named keys holding ordered lists of strings.

    Values are replaced wholesale on ``set``; there is no append log.
    """

    @abstractmethod
    async def get(self, key: str) -> list[str] | None:
        """
        Read the list stored under ``key``.

        Returns:
            list: Stored items, or None if the key was never written.

        Raises:
            StorageError: If the backend is unavailable.
        """
        pass

    @abstractmethod
    async def set(self, key: str, items: list[str]) -> None:
        """
        Overwrite the list stored under ``key``.

        Raises:
            StorageError: If the backend is unavailable.
        """
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """
        List the keys currently stored.

        Raises:
            StorageError: If the backend is unavailable.
        """
        pass

    async def ping(self) -> bool:
        """Whether the backend is reachable."""
        try:
            await self.keys()
        except StorageError:
            return False
        return True


class FrameSource(ABC):
    """A camera that yields one JPEG frame per call."""

    @abstractmethod
    async def read_frame(self) -> bytes:
        """
        Capture a single frame encoded as JPEG.

        Raises:
            CaptureError: If the camera cannot be opened or read.
        """
        pass

    async def close(self) -> None:
        """Release the device."""
        return None
