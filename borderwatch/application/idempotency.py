"""
Idempotency service for repeated images.

Live capture and impatient operators resend identical images; within a
short window the previous model reply is reused instead of paying for
another call. Callers still screen and classify the reply every time.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from borderwatch.core.security import compute_image_hash


@dataclass
class IdempotencyService:
    """
    Caches model replies keyed by detection kind + image hash.

    A window of 0 disables caching.

    Example:
        service = IdempotencyService(window_seconds=5)
        key = service.compute_key(image_b64.encode(), "plate")
        cached = service.lookup(key)
        if cached is None:
            service.mark_seen(key, reply)
    """

    window_seconds: int = 5
    _seen: dict[str, tuple[float, Any]] = field(default_factory=dict)

    def compute_key(self, image_bytes: bytes, kind: str) -> str:
        """Composite key from the kind and a SHA-256 prefix of the image."""
        image_hash = compute_image_hash(image_bytes)[:16]
        return f"{kind}:{image_hash}"

    def lookup(self, key: str) -> Any | None:
        """Cached value for ``key`` if it was seen inside the window."""
        if self.window_seconds <= 0:
            return None
        self._cleanup_expired()
        entry = self._seen.get(key)
        if entry is None:
            return None
        return entry[1]

    def mark_seen(self, key: str, value: Any) -> None:
        if self.window_seconds <= 0:
            return
        self._seen[key] = (time.monotonic(), value)

    def _cleanup_expired(self) -> None:
        cutoff = time.monotonic() - self.window_seconds
        expired = [key for key, (seen, _) in self._seen.items() if seen < cutoff]
        for key in expired:
            del self._seen[key]
