"""
Image payload preparation for the detection invoker.

Uploaded bytes are decoded with OpenCV so non-images are rejected before
any network call, then re-encoded as JPEG, the only format the invoker
sends.
"""

import base64

import cv2
import numpy as np

from borderwatch.core.logging import get_logger

logger = get_logger(__name__)

JPEG_QUALITY = 85


class ImageDecodeError(ValueError):
    """Raised when bytes cannot be decoded as an image."""

    pass


def decode_image(image_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes to a BGR array.

    Raises:
        ImageDecodeError: If the bytes are empty or not an image.
    """
    if not image_bytes:
        raise ImageDecodeError("Empty image")
    buffer = np.frombuffer(image_bytes, np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError("Unsupported or corrupt image")
    return image


def encode_jpeg(image: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    """Encode a BGR array as JPEG bytes."""
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ImageDecodeError("JPEG encoding failed")
    return buffer.tobytes()


def to_base64(jpeg_bytes: bytes) -> str:
    return base64.b64encode(jpeg_bytes).decode("ascii")


def prepare_upload(image_bytes: bytes) -> str:
    """
    Turn an uploaded file into the invoker's base64 JPEG payload.

    Args:
        image_bytes: Raw bytes of any format OpenCV can read.

    Returns:
        str: Base64 JPEG without a data URI prefix.

    Raises:
        ImageDecodeError: If the upload is not an image.
    """
    image = decode_image(image_bytes)
    height, width = image.shape[:2]
    logger.debug("upload_decoded", width=width, height=height, size=len(image_bytes))
    return to_base64(encode_jpeg(image))

