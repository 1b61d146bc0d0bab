"""Capture sources: uploaded files and webcam frames."""

from borderwatch.infrastructure.capture.images import (
    ImageDecodeError,
    decode_image,
    encode_jpeg,
    prepare_upload,
    to_base64,
)
from borderwatch.infrastructure.capture.webcam import CaptureError, WebcamFrameSource

__all__ = [
    "CaptureError",
    "ImageDecodeError",
    "WebcamFrameSource",
    "decode_image",
    "encode_jpeg",
    "prepare_upload",
    "to_base64",
]
