"""
Event domain models.

Events announce upload lifecycle changes to in-process subscribers without
coupling the upload engine to whoever listens.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Dict, Optional


class EventPriority(IntEnum):
    """Event priority levels for processing order."""
    LOW = 1
    NORMAL = 2
    HIGH = 3
    CRITICAL = 4


@dataclass(frozen=True)
class Event:
    """Immutable record of something that happened to an upload."""

    name: str
    """Event name, e.g. ``upload.completed``."""

    data: Any = None
    """Event payload."""

    priority: EventPriority = EventPriority.NORMAL

    timestamp: float = field(default_factory=time.time)

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    source: Optional[str] = None
    """Component that emitted the event."""

    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Event name cannot be empty")

        if not isinstance(self.priority, EventPriority):
            raise ValueError("Priority must be an EventPriority enum value")

    def __lt__(self, other: 'Event') -> bool:
        """Higher priority first, then FIFO by timestamp."""
        if not isinstance(other, Event):
            return NotImplemented

        if self.priority.value != other.priority.value:
            return self.priority.value > other.priority.value

        return self.timestamp < other.timestamp

    def with_metadata(self, **metadata: Any) -> 'Event':
        """Return a copy with additional metadata merged in."""
        return replace(self, metadata={**self.metadata, **metadata})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'data': self.data,
            'priority': self.priority.name,
            'timestamp': self.timestamp,
            'event_id': self.event_id,
            'source': self.source,
            'metadata': self.metadata
        }


class UploadEvents:
    """Names of the events published by the upload manager."""

    CREATED = "upload.created"
    CHUNK_WRITTEN = "upload.chunk_written"
    COMPLETED = "upload.completed"
    FAILED = "upload.failed"
    EXPIRED = "upload.expired"
    RECOVERED = "upload.recovered"
