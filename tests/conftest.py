from __future__ import annotations

import pytest

from loanwizard.capture.fake import FakeCaptureProvider


@pytest.fixture()
def provider() -> FakeCaptureProvider:
    """Fresh fake camera per test."""
    return FakeCaptureProvider()
