"""
Request guards: optional API key and per-client rate limiting.

Every detection request costs a call to the hosted model, so detection
routes are rate limited. Mutating routes require ``X-API-Key`` when an
API key is configured.
"""

import hashlib
import secrets
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from borderwatch.core.config import get_settings
from borderwatch.core.logging import get_logger

logger = get_logger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> None:
    """
    Check the X-API-Key header against the configured key.

    No-op when no API key is configured.

    Raises:
        HTTPException: 401 if the key is missing or wrong.
    """
    settings = get_settings()
    if settings.api_key is None:
        return

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
        )

    if not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("api_key_invalid", reason="key_mismatch")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


@dataclass
class RateLimiter:
    """
    In-memory sliding window rate limiter keyed by client.

    Attributes:
        requests_per_window: Maximum requests allowed per window.
        window_seconds: Size of the sliding window in seconds.
    """

    requests_per_window: int
    window_seconds: int
    _requests: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def _prune(self, key: str, now: float) -> list[float]:
        window_start = now - self.window_seconds
        recent = [t for t in self._requests[key] if t > window_start]
        self._requests[key] = recent
        return recent

    def is_allowed(self, key: str) -> bool:
        """Record a request for ``key`` and report whether it fits the window."""
        now = time.monotonic()
        recent = self._prune(key, now)
        if len(recent) < self.requests_per_window:
            recent.append(now)
            return True
        return False

    def get_remaining(self, key: str) -> int:
        """Requests left for ``key`` in the current window."""
        recent = self._prune(key, time.monotonic())
        return max(0, self.requests_per_window - len(recent))


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide rate limiter so settings are re-read."""
    global _rate_limiter
    _rate_limiter = None


async def check_rate_limit(request: Request) -> None:
    """
    FastAPI dependency enforcing the per-IP rate limit.

    Raises:
        HTTPException: 429 when the limit is exceeded.
    """
    rate_limiter = get_rate_limiter()
    client_ip = request.client.host if request.client else "unknown"

    if not rate_limiter.is_allowed(client_ip):
        logger.warning("rate_limit_exceeded", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={
                "Retry-After": str(rate_limiter.window_seconds),
                "X-RateLimit-Remaining": "0",
            },
        )


def compute_image_hash(image_bytes: bytes) -> str:
    """SHA-256 hex digest of raw image bytes."""
    return hashlib.sha256(image_bytes).hexdigest()
