"""Camera capture session for the selfie.

States: IDLE -> REQUESTING -> STREAMING -> {CAPTURED, CANCELLED}

Resource rules:
    - at most one open stream; ``start`` while REQUESTING/STREAMING is refused
    - every acquired stream is released exactly once, by capture, cancel or
      close
    - a stream that arrives after the request was cancelled is released
      immediately
    - an acquisition that timed out, or whose caller was cancelled, keeps
      running; its stream is released when it arrives and no new request is
      accepted until then
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from loanwizard.capture.encoder import encode_selfie
from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError, CaptureProvider
from loanwizard.models.enums import CaptureState
from loanwizard.schemas.draft import UploadedFile

logger = logging.getLogger(__name__)

ACTIVE_STATES: frozenset[CaptureState] = frozenset({CaptureState.REQUESTING, CaptureState.STREAMING})


class CaptureSession:
    """Owns the device stream between acquisition and release."""

    def __init__(
        self,
        provider: CaptureProvider,
        constraints: CaptureConstraints | None = None,
        *,
        acquire_timeout: float | None = None,
        jpeg_quality: int = 90,
        filename_prefix: str = "selfie",
    ) -> None:
        self._provider = provider
        self._constraints = constraints or CaptureConstraints()
        self._acquire_timeout = acquire_timeout
        self._jpeg_quality = jpeg_quality
        self._filename_prefix = filename_prefix
        self._stream: Any = None
        self._request_id = 0
        self._acquiring = False
        self.state = CaptureState.IDLE

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def has_stream(self) -> bool:
        return self._stream is not None

    async def start(self) -> bool:
        """Acquire the camera and start the preview.

        Returns:
            True if streaming, False if a session was already active, an
            abandoned acquisition has not settled yet, or the request was
            cancelled while pending.

        Raises:
            CaptureDeviceError: If the device could not be acquired. The
                session returns to IDLE and may be retried.
        """
        if self.is_active or self._acquiring:
            logger.warning(
                "Camera start ignored: session %s, acquisition pending=%s", self.state.value, self._acquiring
            )
            return False

        self._request_id += 1
        request_id = self._request_id
        self.state = CaptureState.REQUESTING

        self._acquiring = True
        task = asyncio.ensure_future(self._provider.acquire(self._constraints))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._acquire_timeout)
        except asyncio.CancelledError:
            # The caller went away; the device call itself cannot be interrupted.
            self._abandon(task)
            self._reset_after_failure(request_id)
            raise

        if not done:
            self._abandon(task)
            if not self._reset_after_failure(request_id):
                return False
            raise CaptureDeviceError(f"Camera acquisition timed out after {self._acquire_timeout}s")

        self._acquiring = False
        try:
            stream = task.result()
        except CaptureDeviceError:
            if not self._reset_after_failure(request_id):
                return False
            raise
        except Exception:
            self._reset_after_failure(request_id)
            raise

        if request_id != self._request_id or self.state != CaptureState.REQUESTING:
            logger.info("Camera request %d was cancelled while pending; releasing stream", request_id)
            self._provider.release(stream)
            return False

        self._stream = stream
        self.state = CaptureState.STREAMING

        try:
            await self._provider.start_preview(stream)
        except Exception:
            logger.warning("Error starting camera preview", exc_info=True)

        logger.info("Camera streaming (request %d)", request_id)
        return True

    def capture(self) -> UploadedFile:
        """Grab the current frame as a JPEG artifact and release the camera.

        Raises:
            RuntimeError: If no stream is open.
        """
        if self.state != CaptureState.STREAMING or self._stream is None:
            msg = f"Cannot capture in state {self.state.value}"
            raise RuntimeError(msg)

        frame = self._provider.grab_frame(self._stream)
        artifact = encode_selfie(frame, quality=self._jpeg_quality, prefix=self._filename_prefix)
        self._release()
        self.state = CaptureState.CAPTURED
        logger.info("Selfie captured: %s (%dx%d)", artifact.filename, frame.width, frame.height)
        return artifact

    def cancel(self) -> bool:
        """Abort a pending request or close an open stream without capturing.

        Returns:
            True if there was anything to cancel.
        """
        if not self.is_active:
            return False
        if self.state == CaptureState.REQUESTING:
            # The pending start() sees the new id and releases what it gets.
            self._request_id += 1
        self._release()
        self.state = CaptureState.CANCELLED
        logger.info("Camera session cancelled")
        return True

    def close(self) -> None:
        """Teardown: release anything still held."""
        self.cancel()

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            self._provider.release(stream)

    def _abandon(self, task: asyncio.Future[Any]) -> None:
        """Release whatever an unwaited acquisition eventually opens.

        New requests stay refused until it settles, so two devices are never
        held at once.
        """

        def settle(finished: asyncio.Future[Any]) -> None:
            self._acquiring = False
            if finished.cancelled() or finished.exception() is not None:
                return
            logger.info("Releasing camera opened after its request was abandoned")
            self._provider.release(finished.result())

        task.add_done_callback(settle)

    def _reset_after_failure(self, request_id: int) -> bool:
        """Back to IDLE unless the request was cancelled meanwhile."""
        if request_id != self._request_id:
            return False
        self.state = CaptureState.IDLE
        return True
