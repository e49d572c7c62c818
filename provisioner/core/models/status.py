"""
Status events — the leveled, user-facing provisioning channel.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class StatusLevel(str, Enum):
    """Severity / kind of a status event."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SKIP = "skip"
    SECTION = "section"     # cosmetic grouping, no matching end


class StatusEvent(BaseModel):
    """A single emitted status line."""

    level: StatusLevel
    message: str
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
