"""
Webcam frame source for live capture.

OpenCV calls block, so every device operation runs in the threadpool.
"""

import threading

import cv2
from fastapi.concurrency import run_in_threadpool

from borderwatch.core.logging import get_logger
from borderwatch.domain.ports import FrameSource
from borderwatch.infrastructure.capture.images import encode_jpeg

logger = get_logger(__name__)


class CaptureError(Exception):
    """Raised when the camera cannot be opened or read."""

    pass


class WebcamFrameSource(FrameSource):
    """
    Samples single frames from an OpenCV ``VideoCapture`` device.

    The device is opened lazily on the first read and kept open until
    ``close``.

    Example:
        source = WebcamFrameSource(device=0)
        jpeg = await source.read_frame()
        await source.close()
    """

    def __init__(self, device: int = 0):
        self.device = device
        self._capture: cv2.VideoCapture | None = None
        self._lock = threading.Lock()

    async def read_frame(self) -> bytes:
        return await run_in_threadpool(self._read_frame_sync)

    async def close(self) -> None:
        await run_in_threadpool(self._release)

    def _open(self) -> cv2.VideoCapture:
        if self._capture is None:
            capture = cv2.VideoCapture(self.device)
            if not capture.isOpened():
                capture.release()
                logger.warning("camera_unavailable", device=self.device)
                raise CaptureError(f"Camera {self.device} is unavailable or access was denied")
            logger.info("camera_opened", device=self.device)
            self._capture = capture
        return self._capture

    def _read_frame_sync(self) -> bytes:
        with self._lock:
            capture = self._open()
            ok, frame = capture.read()
            if not ok or frame is None:
                raise CaptureError(f"Camera {self.device} returned no frame")
            return encode_jpeg(frame)

    def _release(self) -> None:
        with self._lock:
            if self._capture is not None:
                self._capture.release()
                self._capture = None
                logger.info("camera_released", device=self.device)
