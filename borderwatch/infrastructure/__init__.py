"""Infrastructure layer package."""

from borderwatch.infrastructure.ai import GeminiInvoker, InvocationError
from borderwatch.infrastructure.capture import (
    CaptureError,
    ImageDecodeError,
    WebcamFrameSource,
    prepare_upload,
)
from borderwatch.infrastructure.storage import (
    FlatFileStore,
    InMemoryStore,
    build_store,
)

__all__ = [
    # AI
    "GeminiInvoker",
    "InvocationError",
    # Capture
    "CaptureError",
    "ImageDecodeError",
    "WebcamFrameSource",
    "prepare_upload",
    # Storage
    "FlatFileStore",
    "InMemoryStore",
    "build_store",
]
