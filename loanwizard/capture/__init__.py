"""Selfie capture: camera session, providers and JPEG encoding."""

from loanwizard.capture.fake import FakeCaptureProvider
from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError, CaptureProvider
from loanwizard.capture.session import CaptureSession

__all__ = [
    "CaptureConstraints",
    "CaptureDeviceError",
    "CaptureProvider",
    "CaptureSession",
    "FakeCaptureProvider",
]
