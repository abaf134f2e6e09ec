"""
Upload session domain model.

An :class:`UploadSession` is the record the server keeps for one upload
attempt: what the client declared, where the bytes are being assembled and
how far the upload has progressed.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .ranges import ByteRangeSet

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadStatus(str, Enum):
    """Upload session status."""
    UPLOADING = "UPLOADING"
    IN_PROGRESS = "IN_PROGRESS"
    UPLOADED = "UPLOADED"


@dataclass
class UploadSession:
    """State tracked per in-flight or completed upload."""
    upload_id: str
    file_name: str
    file_size: int
    storage_location: str
    final_location: str
    content_type: str = DEFAULT_CONTENT_TYPE
    uploaded_bytes: int = 0
    status: UploadStatus = UploadStatus.UPLOADING
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    received: ByteRangeSet = field(default_factory=ByteRangeSet)

    # Serializes progress updates and finalization for this session only
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    # Chunk writes that passed the finalized check and have not been recorded yet
    active_writes: int = field(default=0, init=False, repr=False, compare=False)
    writes_drained: asyncio.Condition = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.writes_drained = asyncio.Condition(self.lock)
        if self.file_size < 0:
            raise ValueError(f"file_size must be non-negative, got {self.file_size}")

    @property
    def next_expected_byte(self) -> int:
        return self.uploaded_bytes

    @property
    def is_finalized(self) -> bool:
        return self.status == UploadStatus.UPLOADED

    @property
    def progress_percentage(self) -> float:
        """Upload progress based on the high-water mark."""
        if self.file_size == 0:
            return 100.0
        return (self.uploaded_bytes / self.file_size) * 100.0

    def missing_ranges(self) -> List[List[int]]:
        """Inclusive byte ranges not received yet."""
        if self.is_finalized:
            return []
        return [[start, end] for start, end in self.received.missing(self.file_size)]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the session for sidecar persistence."""
        return {
            "upload_id": self.upload_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "content_type": self.content_type,
            "storage_location": self.storage_location,
            "final_location": self.final_location,
            "uploaded_bytes": self.uploaded_bytes,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
            "received": self.received.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadSession":
        """Rebuild a session from its sidecar record."""
        return cls(
            upload_id=data["upload_id"],
            file_name=data["file_name"],
            file_size=int(data["file_size"]),
            content_type=data.get("content_type") or DEFAULT_CONTENT_TYPE,
            storage_location=data["storage_location"],
            final_location=data["final_location"],
            uploaded_bytes=int(data.get("uploaded_bytes", 0)),
            status=UploadStatus(data.get("status", UploadStatus.UPLOADING.value)),
            created_at=float(data.get("created_at", time.time())),
            updated_at=float(data.get("updated_at", time.time())),
            completed_at=data.get("completed_at"),
            received=ByteRangeSet(data.get("received", [])),
        )
