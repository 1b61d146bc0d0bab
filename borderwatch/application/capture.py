"""
Live capture sessions.

A session samples a frame every interval and submits it for detection,
with at most one detection in flight per session. Stopping a session bumps
its generation; results that complete afterwards are discarded.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from borderwatch.application.detection import DetectionService
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import Alert, DetectionKind, utcnow
from borderwatch.domain.ports import FrameSource
from borderwatch.infrastructure.ai import InvocationError
from borderwatch.infrastructure.capture import CaptureError, ImageDecodeError, to_base64

logger = get_logger(__name__)


class SingleSlotRunner:
    """
    Runs at most one task at a time.

    Submissions while a task is in flight are rejected, not queued.
    """

    def __init__(self):
        self._task: asyncio.Task | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def current(self) -> asyncio.Task | None:
        return self._task

    def submit_if_idle(self, factory: Callable[[], Awaitable[Any]]) -> bool:
        """
        Start ``factory()`` as a task unless one is already running.

        Returns:
            bool: True if the task was started.
        """
        if self.busy:
            return False
        self._task = asyncio.ensure_future(factory())
        return True

    async def wait(self) -> None:
        """Wait for the in-flight task, if any, to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def cancel(self) -> None:
        if self.busy:
            self._task.cancel()


@dataclass
class CaptureStatus:
    """Snapshot of a live session for the dashboard."""

    kind: DetectionKind
    running: bool
    busy: bool
    interval_seconds: float
    generation: int
    ticks: int
    skipped: int
    applied: int
    discarded: int
    errors: int
    started_at: datetime | None
    last_alert: Alert | None
    last_error: str | None


class LiveCaptureSession:
    """
    Periodic detection on frames from one source.

    ``tick()`` performs a single sampling step and can be driven directly;
    ``start()`` runs it on a timer. A camera failure stops the session and
    calls ``on_source_failed`` so the owner can release the device.
    """

    def __init__(
        self,
        kind: DetectionKind,
        source: FrameSource,
        service: DetectionService,
        interval_seconds: float = 1.8,
        environmental_conditions: str | None = None,
        on_source_failed: Callable[[], Awaitable[None]] | None = None,
    ):
        self.kind = kind
        self.interval_seconds = interval_seconds
        self._source = source
        self._service = service
        self._conditions = environmental_conditions
        self._on_source_failed = on_source_failed
        self._runner = SingleSlotRunner()
        self._loop_task: asyncio.Task | None = None

        self.running = False
        self.generation = 0
        self.ticks = 0
        self.skipped = 0
        self.applied = 0
        self.discarded = 0
        self.errors = 0
        self.started_at: datetime | None = None
        self.last_alert: Alert | None = None
        self.last_error: str | None = None

    @property
    def runner(self) -> SingleSlotRunner:
        return self._runner

    def start(self) -> None:
        """Begin ticking on a timer. Starting a running session is a no-op."""
        if self.running:
            return
        self.running = True
        self.generation += 1
        self.started_at = utcnow()
        self.last_error = None
        self._loop_task = asyncio.ensure_future(self._loop())
        logger.info(
            "capture_started",
            kind=self.kind.value,
            interval=self.interval_seconds,
            generation=self.generation,
        )

    async def stop(self) -> None:
        """
        Stop ticking.

        An in-flight detection is left to finish but its result is dropped.
        """
        if not self.running:
            return
        self.running = False
        self.generation += 1

        task, self._loop_task = self._loop_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        logger.info("capture_stopped", kind=self.kind.value, generation=self.generation)

    def tick(self) -> bool:
        """
        Sample one frame if no detection is in flight.

        Returns:
            bool: True if a detection was submitted.
        """
        self.ticks += 1
        generation = self.generation
        submitted = self._runner.submit_if_idle(lambda: self._process(generation))
        if not submitted:
            self.skipped += 1
            logger.debug("capture_tick_skipped", kind=self.kind.value)
        return submitted

    def status(self) -> CaptureStatus:
        return CaptureStatus(
            kind=self.kind,
            running=self.running,
            busy=self._runner.busy,
            interval_seconds=self.interval_seconds,
            generation=self.generation,
            ticks=self.ticks,
            skipped=self.skipped,
            applied=self.applied,
            discarded=self.discarded,
            errors=self.errors,
            started_at=self.started_at,
            last_alert=self.last_alert,
            last_error=self.last_error,
        )

    async def _loop(self) -> None:
        while self.running:
            self.tick()
            await asyncio.sleep(self.interval_seconds)

    async def _process(self, generation: int) -> None:
        try:
            frame = await self._source.read_frame()
            outcome = await self._service.analyze(
                self.kind,
                to_base64(frame),
                environmental_conditions=self._conditions,
            )
        except CaptureError as e:
            self.errors += 1
            self.last_error = str(e)
            logger.warning("capture_source_failed", kind=self.kind.value, error=str(e))
            await self.stop()
            if self._on_source_failed is not None:
                await self._on_source_failed()
            return
        except ImageDecodeError as e:
            self.errors += 1
            self.last_error = "Unreadable frame"
            logger.warning("capture_frame_unreadable", kind=self.kind.value, error=str(e))
            return
        except InvocationError as e:
            self.errors += 1
            self.last_error = "Detection failed"
            logger.warning("capture_detection_failed", kind=self.kind.value, error=str(e))
            return
        except Exception as e:
            # Nothing awaits the runner task, so unexpected errors end here
            self.errors += 1
            self.last_error = "Capture failed"
            logger.exception("capture_tick_failed", kind=self.kind.value, error=str(e))
            return

        if generation != self.generation:
            self.discarded += 1
            logger.info(
                "capture_result_discarded",
                kind=self.kind.value,
                generation=generation,
                current=self.generation,
            )
            return

        await self._service.apply(outcome)
        self.applied += 1
        if outcome.alert is not None:
            self.last_alert = outcome.alert


class CaptureManager:
    """
    Registry of live sessions, one per detection kind.

    All sessions share one frame source, opened on first use and closed
    once no session is running.
    """

    def __init__(
        self,
        service: DetectionService,
        source_factory: Callable[[], FrameSource],
        interval_seconds: float = 1.8,
    ):
        self._service = service
        self._source_factory = source_factory
        self.interval_seconds = interval_seconds
        self._source: FrameSource | None = None
        self._sessions: dict[DetectionKind, LiveCaptureSession] = {}

    def get(self, kind: DetectionKind) -> LiveCaptureSession | None:
        return self._sessions.get(kind)

    def status(self, kind: DetectionKind) -> CaptureStatus | None:
        session = self._sessions.get(kind)
        return session.status() if session else None

    async def start(
        self,
        kind: DetectionKind,
        environmental_conditions: str | None = None,
    ) -> LiveCaptureSession:
        """
        Start (or keep running) the session for ``kind``.

        One frame is read from the source before the session starts.

        Raises:
            CaptureError: If the camera cannot be opened or read.
        """
        session = self._sessions.get(kind)
        if session is not None and session.running:
            return session

        if self._source is None:
            self._source = self._source_factory()
        try:
            await self._source.read_frame()
        except CaptureError:
            await self._close_source_if_idle()
            raise

        session = LiveCaptureSession(
            kind=kind,
            source=self._source,
            service=self._service,
            interval_seconds=self.interval_seconds,
            environmental_conditions=environmental_conditions,
            on_source_failed=self._close_source_if_idle,
        )
        self._sessions[kind] = session
        session.start()
        return session

    async def stop(self, kind: DetectionKind) -> LiveCaptureSession | None:
        session = self._sessions.get(kind)
        if session is None:
            return None
        await session.stop()
        await self._close_source_if_idle()
        return session

    async def shutdown(self) -> None:
        """Stop every session and cancel in-flight detections."""
        for session in self._sessions.values():
            await session.stop()
            session.runner.cancel()
        await self._close_source_if_idle()

    async def _close_source_if_idle(self) -> None:
        if self._source is None:
            return
        if any(s.running for s in self._sessions.values()):
            return
        source, self._source = self._source, None
        await source.close()
