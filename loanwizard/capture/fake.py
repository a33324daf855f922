"""In-memory capture provider for tests and headless development.

Produces solid-colour Pillow frames and records every acquire/release so
tests can assert that no stream is left open.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field

from PIL import Image

from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError


@dataclass
class FakeStream:
    stream_id: int
    width: int
    height: int
    active: bool = True
    playing: bool = False


@dataclass
class FakeCaptureProvider:
    """Configurable fake camera.

    Attributes:
        fail_acquire: Raise CaptureDeviceError from ``acquire``.
        fail_preview: Raise from ``start_preview`` (playback failure).
        acquire_gate: If set, ``acquire`` waits on it before returning.
        native_size: Resolution of produced frames (ignores ideal constraints).
    """

    native_size: tuple[int, int] = (640, 480)
    color: str = "navy"
    fail_acquire: bool = False
    fail_preview: bool = False
    acquire_gate: asyncio.Event | None = None
    streams: list[FakeStream] = field(default_factory=list)
    released: list[int] = field(default_factory=list)
    last_constraints: CaptureConstraints | None = None
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    async def acquire(self, constraints: CaptureConstraints) -> FakeStream:
        self.last_constraints = constraints
        if self.acquire_gate is not None:
            await self.acquire_gate.wait()
        if self.fail_acquire:
            raise CaptureDeviceError("NotAllowedError: permission denied")
        stream = FakeStream(next(self._ids), *self.native_size)
        self.streams.append(stream)
        return stream

    async def start_preview(self, stream: FakeStream) -> None:
        if self.fail_preview:
            raise RuntimeError("play() request was interrupted")
        stream.playing = True

    def grab_frame(self, stream: FakeStream) -> Image.Image:
        if not stream.active:
            raise CaptureDeviceError(f"Stream {stream.stream_id} is not active")
        return Image.new("RGB", (stream.width, stream.height), color=self.color)

    def release(self, stream: FakeStream) -> None:
        stream.active = False
        stream.playing = False
        self.released.append(stream.stream_id)

    @property
    def open_streams(self) -> list[FakeStream]:
        return [s for s in self.streams if s.active]
