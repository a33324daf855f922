"""Webcam capture provider backed by OpenCV.

Blocking device calls run in a worker thread so the event loop stays free
while the camera warms up.
"""

from __future__ import annotations

import asyncio
import logging

import cv2
from PIL import Image

from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError

logger = logging.getLogger(__name__)


class OpenCVCaptureProvider:
    """Reads frames from a local camera via ``cv2.VideoCapture``.

    ``device_index`` selects the front-facing camera; OpenCV has no notion of
    facing mode, so the index is configured per machine.
    """

    def __init__(self, device_index: int = 0) -> None:
        self._device_index = device_index

    async def acquire(self, constraints: CaptureConstraints) -> cv2.VideoCapture:
        return await asyncio.to_thread(self._open, constraints)

    def _open(self, constraints: CaptureConstraints) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(self._device_index)
        if not capture.isOpened():
            capture.release()
            raise CaptureDeviceError(f"Camera {self._device_index} could not be opened")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)
        return capture

    async def start_preview(self, stream: cv2.VideoCapture) -> None:
        # First read blocks until the sensor delivers; fail here rather than on capture.
        ok, _ = await asyncio.to_thread(stream.read)
        if not ok:
            raise CaptureDeviceError("Camera opened but returned no frame")

    def grab_frame(self, stream: cv2.VideoCapture) -> Image.Image:
        ok, frame = stream.read()
        if not ok or frame is None:
            raise CaptureDeviceError("Could not read a frame from the camera")
        height, width = frame.shape[:2]
        logger.debug("Grabbed %dx%d frame", width, height)
        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    def release(self, stream: cv2.VideoCapture) -> None:
        stream.release()
