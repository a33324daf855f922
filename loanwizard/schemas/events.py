"""SystemEvent schema: the event type emitted by the application wizard.

Every state-changing action emits a SystemEvent. Subscribers (audit sinks,
analytics, UI notifiers) consume these events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the wizard."""

    # Wizard lifecycle
    WIZARD_STARTED = "wizard.started"
    WIZARD_STEP_CHANGED = "wizard.step_changed"
    WIZARD_STEP_BLOCKED = "wizard.step_blocked"
    WIZARD_CLOSED = "wizard.closed"

    # Dynamic schema
    SCHEMA_RESOLVED = "schema.resolved"
    SCHEMA_DISCARDED = "schema.discarded"

    # Camera
    CAPTURE_STARTED = "capture.started"
    CAPTURE_FAILED = "capture.failed"
    CAPTURE_COMPLETED = "capture.completed"
    CAPTURE_CANCELLED = "capture.cancelled"
    SELFIE_REMOVED = "capture.selfie_removed"

    # Submission
    SUBMISSION_STARTED = "submission.started"
    SUBMISSION_REJECTED = "submission.rejected"
    SUBMISSION_COMPLETED = "submission.completed"
    SUBMISSION_FAILED = "submission.failed"

    # External API
    EXTERNAL_API_CALL = "external.api_call"
    EXTERNAL_API_RESPONSE = "external.api_response"


class SystemEvent(BaseModel):
    """Event flowing out of the wizard. Immutable once created."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (API calls are not always tied to a wizard)
    wizard_id: uuid.UUID | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
