"""Capture provider interface: the camera as the wizard sees it.

A provider acquires a device stream, starts its preview, grabs still frames
at the stream's native resolution, and releases the device. Implementations:
``OpenCVCaptureProvider`` (real webcam) and ``FakeCaptureProvider`` (tests).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from PIL import Image

CAMERA_ERROR_MESSAGE = "Unable to access camera. Please check permissions."


class CaptureDeviceError(Exception):
    """Raised when the camera cannot be acquired or read."""

    def __init__(self, message: str, user_message: str = CAMERA_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.user_message = user_message


@dataclass(frozen=True)
class CaptureConstraints:
    """What to ask the device for: front camera, video only."""

    facing_mode: str = "user"
    ideal_width: int = 1280
    ideal_height: int = 720
    audio: bool = False


class CaptureProvider(Protocol):
    async def acquire(self, constraints: CaptureConstraints) -> Any:
        """Open a stream. Raises CaptureDeviceError on failure."""
        ...

    async def start_preview(self, stream: Any) -> None:
        """Attach the stream to the preview sink and start playback."""
        ...

    def grab_frame(self, stream: Any) -> Image.Image:
        """Current frame at the stream's native resolution."""
        ...

    def release(self, stream: Any) -> None:
        """Stop every track of the stream."""
        ...
