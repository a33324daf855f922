"""Still-image encoding for captured selfies.

Synchronous, pure Python (Pillow): RGB conversion and JPEG encoding at the
frame's own resolution.
"""

from __future__ import annotations

import io
import time

from PIL import Image

from loanwizard.schemas.draft import UploadedFile

SELFIE_CONTENT_TYPE = "image/jpeg"


def selfie_filename(prefix: str = "selfie", timestamp_ms: int | None = None) -> str:
    """``selfie-<epoch ms>.jpg``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{prefix}-{timestamp_ms}.jpg"


def encode_jpeg(frame: Image.Image, quality: int = 90) -> bytes:
    """Encode a frame as JPEG without resizing it."""
    if frame.mode != "RGB":
        frame = frame.convert("RGB")
    buf = io.BytesIO()
    frame.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def encode_selfie(frame: Image.Image, quality: int = 90, prefix: str = "selfie") -> UploadedFile:
    return UploadedFile(
        filename=selfie_filename(prefix),
        content=encode_jpeg(frame, quality),
        content_type=SELFIE_CONTENT_TYPE,
    )
