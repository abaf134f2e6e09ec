"""
Upload Manager implementation.

This module ties the session store, chunk writer and finalizer into the
service the HTTP layer talks to, and adds lifecycle management, statistics,
event publishing and expiry of abandoned sessions.
"""

import asyncio
import logging
import os
import time
from typing import Any, Dict, List, Optional

import aiofiles.os

from ....core.domain.events import UploadEvents
from ....core.domain.exceptions import SessionNotFound, UploadError
from ....core.domain.session import UploadSession, UploadStatus
from ....core.interfaces.messaging import IEventBus
from ....core.interfaces.upload import IUploadManager
from ...config.models import StorageConfig
from .finalizer import Finalizer
from .store import SessionStore
from .writer import ChunkWriter

logger = logging.getLogger(__name__)


class UploadManager(IUploadManager):
    """
    Upload manager service implementation.

    Provides resumable chunked uploads: sessions are initiated, receive
    byte-range chunks in any order and are finalized into a single artifact.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        event_bus: Optional[IEventBus] = None,
        store: Optional[SessionStore] = None
    ):
        """
        Initialize upload manager.

        Args:
            config: Storage configuration
            event_bus: Event bus for publishing upload events
            store: Session store (built from ``config`` when omitted)
        """
        self._config = config or StorageConfig()
        self._event_bus = event_bus
        self._store = store or SessionStore.from_config(self._config)
        self._writer = ChunkWriter(self._store)
        self._finalizer = Finalizer(self._store, self._config.require_complete_coverage)

        self._cleanup_task: Optional[asyncio.Task[None]] = None
        self._running = False

        self._stats: Dict[str, int] = {
            "total_uploads": 0,
            "completed_uploads": 0,
            "failed_chunks": 0,
            "failed_completions": 0,
            "total_bytes_received": 0,
            "expired_uploads": 0,
            "recovered_uploads": 0
        }

    @property
    def name(self) -> str:
        return "UploadManager"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def config(self) -> StorageConfig:
        return self._config

    async def start(self) -> None:
        """Create the storage root, recover sessions and start expiry cleanup."""
        if self._running:
            return

        await aiofiles.os.makedirs(self._store.upload_dir, exist_ok=True)

        recovered = await self._store.recover()
        if recovered:
            self._stats["recovered_uploads"] += recovered
            await self._publish(UploadEvents.RECOVERED, {"count": recovered})

        self._running = True
        self._start_cleanup_task()

        logger.info(f"Upload manager started, storing uploads in {self._store.upload_dir}")

    async def stop(self) -> None:
        """Stop the cleanup task. Sessions and files are left in place."""
        if not self._running:
            return

        self._running = False
        await self._stop_cleanup_task()

        logger.info("Upload manager stopped")

    async def configure(self, config: Dict[str, Any]) -> None:
        """
        Update runtime-tunable storage settings.

        Only ``require_complete_coverage``, ``session_ttl_hours`` and
        ``cleanup_interval`` can change while running; storage locations are
        fixed for the lifetime of the store.
        """
        for key in ("require_complete_coverage", "session_ttl_hours", "cleanup_interval"):
            if key in config:
                setattr(self._config, key, config[key])

        self._finalizer = Finalizer(self._store, self._config.require_complete_coverage)

        if self._running:
            await self._stop_cleanup_task()
            self._start_cleanup_task()

    async def check_health(self) -> Dict[str, Any]:
        upload_dir = self._store.upload_dir
        writable = upload_dir.is_dir() and os.access(upload_dir, os.W_OK)

        return {
            "healthy": self._running and writable,
            "status": "running" if self._running else "stopped",
            "details": {
                "upload_directory": str(upload_dir),
                "upload_directory_writable": writable,
                "sessions_total": len(self._store),
                "sessions_active": len(self._active_sessions()),
                "require_complete_coverage": self._config.require_complete_coverage,
                "persist_sessions": self._store.persist_sessions,
                "statistics": dict(self._stats)
            }
        }

    async def initiate(
        self,
        file_name: str,
        file_size: int,
        content_type: Optional[str] = None
    ) -> UploadSession:
        """Create a new upload session."""
        upload_id = await self._store.create(file_name, file_size, content_type)
        session = self._store.get(upload_id)
        if session is None:
            raise SessionNotFound(upload_id)

        self._stats["total_uploads"] += 1

        await self._publish(UploadEvents.CREATED, {
            "upload_id": upload_id,
            "file_name": file_name,
            "file_size": file_size,
            "content_type": session.content_type
        })

        return session

    async def upload_chunk(
        self,
        upload_id: str,
        content_range: Optional[str],
        payload: bytes
    ) -> UploadSession:
        """Apply one byte-range chunk to an upload session."""
        try:
            session = await self._writer.write(upload_id, content_range, payload)
        except UploadError as e:
            self._stats["failed_chunks"] += 1
            logger.warning(f"Rejected chunk for {upload_id} ({content_range}): {e.message}")
            raise

        self._stats["total_bytes_received"] += len(payload)

        await self._publish(UploadEvents.CHUNK_WRITTEN, {
            "upload_id": upload_id,
            "content_range": content_range,
            "uploaded_bytes": session.uploaded_bytes,
            "progress": session.progress_percentage
        })

        return session

    async def complete(self, upload_id: str) -> UploadSession:
        """Finalize an upload session into its final artifact."""
        try:
            session = await self._finalizer.finalize(upload_id)
        except UploadError as e:
            self._stats["failed_completions"] += 1
            logger.warning(f"Completion of {upload_id} failed: {e.message}")
            await self._publish(UploadEvents.FAILED, {
                "upload_id": upload_id,
                "error": e.error_code,
                "message": e.message
            })
            raise

        self._stats["completed_uploads"] += 1

        await self._publish(UploadEvents.COMPLETED, {
            "upload_id": upload_id,
            "file_name": session.file_name,
            "file_size": session.file_size,
            "final_path": session.final_location
        })

        return session

    def get_session(self, upload_id: str) -> Optional[UploadSession]:
        return self._store.get(upload_id)

    def list_sessions(self, status: Optional[UploadStatus] = None) -> List[UploadSession]:
        return self._store.list_sessions(status)

    async def cleanup_expired_sessions(self, older_than_hours: Optional[float] = None) -> int:
        """
        Remove sessions not updated within ``older_than_hours``.

        Unfinished sessions lose their partial files. Finished sessions only
        leave the registry; their artifacts stay on disk. Sessions with an
        operation in flight are skipped.

        Returns:
            Number of sessions removed
        """
        ttl_hours = self._config.session_ttl_hours if older_than_hours is None else older_than_hours
        cutoff_time = time.time() - (ttl_hours * 3600)
        cleaned_count = 0

        for session in self._store.list_sessions():
            if session.updated_at >= cutoff_time or session.lock.locked():
                continue

            async with session.lock:
                if session.active_writes:
                    continue
                if not await self._store.remove(session.upload_id, delete_files=True):
                    continue

            cleaned_count += 1
            if not session.is_finalized:
                self._stats["expired_uploads"] += 1
                await self._publish(UploadEvents.EXPIRED, {
                    "upload_id": session.upload_id,
                    "uploaded_bytes": session.uploaded_bytes,
                    "file_size": session.file_size
                })

        if cleaned_count > 0:
            logger.info(f"Cleaned up {cleaned_count} expired upload session(s)")

        return cleaned_count

    def get_upload_statistics(self) -> Dict[str, Any]:
        active = self._active_sessions()

        return {
            **self._stats,
            "active_uploads": len(active),
            "total_active_size": sum(s.file_size for s in active),
            "total_uploaded_size": sum(s.uploaded_bytes for s in active)
        }

    def _active_sessions(self) -> List[UploadSession]:
        return [s for s in self._store.list_sessions() if not s.is_finalized]

    async def _publish(self, event_name: str, data: Dict[str, Any]) -> None:
        """Publish an upload event; delivery problems never fail the upload."""
        if self._event_bus is None:
            return

        try:
            await self._event_bus.publish(event_name, data)
        except RuntimeError as e:
            logger.warning(f"Could not publish {event_name}: {e}")

    def _start_cleanup_task(self) -> None:
        if self._config.cleanup_interval > 0:
            self._cleanup_task = asyncio.create_task(self._cleanup_worker())

    async def _stop_cleanup_task(self) -> None:
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None

    async def _cleanup_worker(self) -> None:
        """Periodically expire abandoned sessions."""
        while self._running:
            await asyncio.sleep(self._config.cleanup_interval)
            try:
                await self.cleanup_expired_sessions()
            except Exception as e:
                logger.error(f"Upload cleanup error: {e}")
