"""Submission request/response schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from loanwizard.models.enums import SubmissionStatus

# (part name, (filename, content, content type)), the shape httpx accepts for ``files=``
FilePart = tuple[str, tuple[str, bytes, str]]


@dataclass(frozen=True)
class MultipartPayload:
    """Outbound multi-part message: text parts plus binary parts."""

    data: dict[str, str] = field(default_factory=dict)
    files: list[FilePart] = field(default_factory=list)

    def file_parts(self, name: str) -> list[tuple[str, bytes, str]]:
        """All binary parts sent under ``name``."""
        return [part for part_name, part in self.files if part_name == name]


class ApplicationResponse(BaseModel):
    """Envelope returned by ``POST /applications``."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Any = None
    message: str | None = None


class SubmissionOutcome(BaseModel):
    """What the presentation layer needs after a submit attempt."""

    status: SubmissionStatus
    message: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTED
