"""Core configuration and utilities package."""

from borderwatch.core.config import Settings, get_settings
from borderwatch.core.logging import get_logger, set_correlation_id, setup_logging
from borderwatch.core.security import (
    RateLimiter,
    check_rate_limit,
    compute_image_hash,
    verify_api_key,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "set_correlation_id",
    "setup_logging",
    # Security
    "RateLimiter",
    "check_rate_limit",
    "compute_image_hash",
    "verify_api_key",
]
