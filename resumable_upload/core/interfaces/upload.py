"""
Upload service interfaces.

This module defines the contracts of the upload engine: the session store
that owns every upload session, the chunk writer that applies byte ranges to
partial files, the finalizer that promotes them to final artifacts, and the
manager that ties the three together for the transport layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .lifecycle import IComponent
from ..domain.session import UploadSession, UploadStatus


class ISessionStore(ABC):
    """Registry of upload sessions keyed by upload id."""

    @abstractmethod
    async def create(
        self,
        file_name: str,
        file_size: int,
        content_type: Optional[str] = None
    ) -> str:
        """
        Create a new upload session and its zero-length partial file.

        Args:
            file_name: Client-declared file name (informational only)
            file_size: Declared total size in bytes
            content_type: Declared MIME type (optional)

        Returns:
            The new upload id

        Raises:
            AllocationError: If the partial file cannot be created
        """
        pass

    @abstractmethod
    def get(self, upload_id: str) -> Optional[UploadSession]:
        """Look up a session; returns None if it does not exist."""
        pass

    @abstractmethod
    async def record_chunk(self, session: UploadSession, start: int, end: int) -> None:
        """Record a successfully written inclusive range on the session."""
        pass

    @abstractmethod
    async def mark_uploaded(self, session: UploadSession, final_size: int) -> None:
        """Move the session to its terminal UPLOADED state."""
        pass

    @abstractmethod
    def list_sessions(self, status: Optional[UploadStatus] = None) -> List[UploadSession]:
        """List sessions, optionally filtered by status."""
        pass

    @abstractmethod
    async def remove(self, upload_id: str, delete_files: bool = True) -> bool:
        """Drop a session from the registry."""
        pass


class IChunkWriter(ABC):
    """Validates and applies one byte-range segment."""

    @abstractmethod
    async def write(
        self,
        upload_id: str,
        content_range: Optional[str],
        payload: bytes
    ) -> UploadSession:
        """
        Write one chunk into the session's partial file.

        Args:
            upload_id: Target session
            content_range: Range descriptor ``bytes <start>-<end>/<total>``
            payload: Raw chunk bytes

        Returns:
            The updated session
        """
        pass


class IFinalizer(ABC):
    """Promotes a fully received partial file to its final location."""

    @abstractmethod
    async def finalize(self, upload_id: str) -> UploadSession:
        """
        Validate and atomically promote the session's partial file.

        Returns:
            The session in UPLOADED state
        """
        pass


class IUploadManager(IComponent):
    """
    Interface for the upload management service.

    Exposes the initiate / upload chunk / complete operations of resumable
    uploads plus housekeeping for the rest of the application.
    """

    @abstractmethod
    async def initiate(
        self,
        file_name: str,
        file_size: int,
        content_type: Optional[str] = None
    ) -> UploadSession:
        """Create a new upload session."""
        pass

    @abstractmethod
    async def upload_chunk(
        self,
        upload_id: str,
        content_range: Optional[str],
        payload: bytes
    ) -> UploadSession:
        """Apply one chunk to an upload session."""
        pass

    @abstractmethod
    async def complete(self, upload_id: str) -> UploadSession:
        """Finalize an upload session."""
        pass

    @abstractmethod
    def get_session(self, upload_id: str) -> Optional[UploadSession]:
        """Get an upload session by id."""
        pass

    @abstractmethod
    def list_sessions(self, status: Optional[UploadStatus] = None) -> List[UploadSession]:
        """List upload sessions with optional status filtering."""
        pass

    @abstractmethod
    async def cleanup_expired_sessions(self, older_than_hours: Optional[float] = None) -> int:
        """Remove sessions idle for longer than the given number of hours."""
        pass

    @abstractmethod
    def get_upload_statistics(self) -> Dict[str, Any]:
        """Get upload statistics and metrics."""
        pass
