"""Tests for the OpenCV webcam provider with the device mocked out."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from loanwizard.capture.opencv import OpenCVCaptureProvider
from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError
from loanwizard.capture.session import CaptureSession
from loanwizard.models.enums import CaptureState


class TestAcquire:
    @pytest.mark.asyncio()
    async def test_unopened_device_raises_and_releases(self):
        with patch("loanwizard.capture.opencv.cv2.VideoCapture") as mock_cls:
            mock_cls.return_value.isOpened.return_value = False
            with pytest.raises(CaptureDeviceError, match="could not be opened"):
                await OpenCVCaptureProvider(2).acquire(CaptureConstraints())

        mock_cls.assert_called_once_with(2)
        mock_cls.return_value.release.assert_called_once()

    @pytest.mark.asyncio()
    async def test_ideal_size_requested(self):
        with patch("loanwizard.capture.opencv.cv2.VideoCapture") as mock_cls:
            mock_cls.return_value.isOpened.return_value = True
            stream = await OpenCVCaptureProvider().acquire(CaptureConstraints(ideal_width=1280, ideal_height=720))

        stream.set.assert_any_call(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        stream.set.assert_any_call(cv2.CAP_PROP_FRAME_HEIGHT, 720)

    @pytest.mark.asyncio()
    async def test_preview_without_frame_fails(self):
        stream = MagicMock()
        stream.read.return_value = (False, None)
        with pytest.raises(CaptureDeviceError):
            await OpenCVCaptureProvider().start_preview(stream)


class _SlowVideoCapture:
    """Opens in a worker thread slower than the session is willing to wait."""

    opened: list[_SlowVideoCapture] = []

    def __init__(self, index: int) -> None:
        time.sleep(0.2)
        self.index = index
        self.released = False
        _SlowVideoCapture.opened.append(self)

    def isOpened(self) -> bool:
        return True

    def set(self, prop: int, value: float) -> bool:
        return True

    def release(self) -> None:
        self.released = True


class TestSlowDevice:
    @pytest.mark.asyncio()
    async def test_device_opened_after_timeout_is_released(self):
        _SlowVideoCapture.opened = []
        session = CaptureSession(OpenCVCaptureProvider(0), acquire_timeout=0.05)

        with patch("loanwizard.capture.opencv.cv2.VideoCapture", _SlowVideoCapture):
            with pytest.raises(CaptureDeviceError, match="timed out"):
                await session.start()
            assert session.state == CaptureState.IDLE

            for _ in range(100):
                if _SlowVideoCapture.opened and _SlowVideoCapture.opened[0].released:
                    break
                await asyncio.sleep(0.02)

        assert len(_SlowVideoCapture.opened) == 1
        assert _SlowVideoCapture.opened[0].released is True


class TestGrabFrame:
    def test_bgr_converted_to_rgb(self):
        frame = np.zeros((4, 6, 3), dtype=np.uint8)
        frame[..., 0] = 255  # blue channel in BGR order
        stream = MagicMock()
        stream.read.return_value = (True, frame)

        image = OpenCVCaptureProvider().grab_frame(stream)

        assert image.size == (6, 4)
        assert image.getpixel((0, 0)) == (0, 0, 255)

    def test_release(self):
        stream = MagicMock()
        OpenCVCaptureProvider().release(stream)
        stream.release.assert_called_once()
