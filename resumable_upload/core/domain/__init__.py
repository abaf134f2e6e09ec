"""
Domain models for upload sessions.

Pure data structures and errors with no framework or filesystem
dependencies.
"""

from .events import Event, EventPriority, UploadEvents
from .exceptions import (
    UploadError, SessionNotFound, AllocationError, MalformedRange, MissingRange,
    SizeMismatch, ChunkLengthMismatch, PartialMissing, IncompleteUpload,
    SessionAlreadyFinalized, ChunkWriteError, FinalizationError
)
from .ranges import ByteRangeSet, ContentRange
from .session import UploadSession, UploadStatus, DEFAULT_CONTENT_TYPE

__all__ = [
    "Event",
    "EventPriority",
    "UploadEvents",
    "UploadError",
    "SessionNotFound",
    "AllocationError",
    "MalformedRange",
    "MissingRange",
    "SizeMismatch",
    "ChunkLengthMismatch",
    "PartialMissing",
    "IncompleteUpload",
    "SessionAlreadyFinalized",
    "ChunkWriteError",
    "FinalizationError",
    "ByteRangeSet",
    "ContentRange",
    "UploadSession",
    "UploadStatus",
    "DEFAULT_CONTENT_TYPE",
]
