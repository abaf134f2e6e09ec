"""
In-memory session store backed by partial files on the local filesystem.

The store owns every :class:`UploadSession`. It allocates the partial file
of a new session, serializes progress updates per session and, when
persistence is enabled, mirrors each session into a JSON sidecar next to its
partial file so in-flight uploads survive a restart.
"""

import asyncio
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

import aiofiles
import aiofiles.os

from ....core.domain.exceptions import AllocationError, SessionAlreadyFinalized
from ....core.domain.session import DEFAULT_CONTENT_TYPE, UploadSession, UploadStatus
from ....core.interfaces.upload import ISessionStore
from ...config.models import SIDECAR_SUFFIX, StorageConfig

logger = logging.getLogger(__name__)


class SessionStore(ISessionStore):
    """Registry of upload sessions keyed by upload id."""

    def __init__(
        self,
        upload_dir: str,
        partial_suffix: str = ".part",
        final_suffix: str = ".mp4",
        default_content_type: str = DEFAULT_CONTENT_TYPE,
        persist_sessions: bool = True
    ):
        """
        Initialize the session store.

        Args:
            upload_dir: Root directory for partial files, artifacts and sidecars
            partial_suffix: Suffix of partial files (``<id><suffix>``)
            final_suffix: Suffix of final artifacts
            default_content_type: Content type used when none is declared
            persist_sessions: Mirror sessions into JSON sidecars
        """
        self._upload_dir = Path(upload_dir)
        self._partial_suffix = partial_suffix
        self._final_suffix = final_suffix
        self._default_content_type = default_content_type
        self._persist_sessions = persist_sessions

        self._sessions: Dict[str, UploadSession] = {}
        self._issued_ids: Set[str] = set()
        self._registry_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> "SessionStore":
        return cls(
            upload_dir=config.upload_directory,
            partial_suffix=config.partial_suffix,
            final_suffix=config.final_suffix,
            default_content_type=config.default_content_type,
            persist_sessions=config.persist_sessions
        )

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @property
    def persist_sessions(self) -> bool:
        return self._persist_sessions

    def partial_path(self, upload_id: str) -> Path:
        return self._upload_dir / f"{upload_id}{self._partial_suffix}"

    def final_path(self, upload_id: str) -> Path:
        return self._upload_dir / f"{upload_id}{self._final_suffix}"

    def sidecar_path(self, upload_id: str) -> Path:
        return self._upload_dir / f"{upload_id}{SIDECAR_SUFFIX}"

    async def create(
        self,
        file_name: str,
        file_size: int,
        content_type: Optional[str] = None
    ) -> str:
        """Create a session and its zero-length partial file."""
        if file_size < 0:
            raise ValueError(f"file_size must be non-negative, got {file_size}")

        async with self._registry_lock:
            upload_id = str(uuid.uuid4())
            while upload_id in self._issued_ids:
                upload_id = str(uuid.uuid4())
            self._issued_ids.add(upload_id)

        partial = self.partial_path(upload_id)
        try:
            await aiofiles.os.makedirs(self._upload_dir, exist_ok=True)
            async with aiofiles.open(partial, "wb"):
                pass
        except OSError as e:
            raise AllocationError(
                f"Cannot create partial file {partial}: {e}",
                upload_id=upload_id,
                path=str(partial)
            ) from e

        session = UploadSession(
            upload_id=upload_id,
            file_name=file_name,
            file_size=file_size,
            content_type=content_type or self._default_content_type,
            storage_location=str(partial),
            final_location=str(self.final_path(upload_id))
        )

        async with self._registry_lock:
            self._sessions[upload_id] = session

        await self._persist(session)

        logger.info(f"Created upload session: {upload_id} ({file_name}, {file_size} bytes)")
        return upload_id

    def get(self, upload_id: str) -> Optional[UploadSession]:
        return self._sessions.get(upload_id)

    async def record_chunk(self, session: UploadSession, start: int, end: int) -> None:
        """
        Record the inclusive range ``[start, end]`` as written.

        The high-water mark only ever grows, so replayed or out-of-order
        chunks never move progress backwards.

        Raises:
            SessionAlreadyFinalized: If the session was finalized meanwhile
        """
        async with session.lock:
            if session.is_finalized:
                raise SessionAlreadyFinalized(session.upload_id)

            session.received.add(start, end)
            session.uploaded_bytes = max(session.uploaded_bytes, end + 1)
            if session.status == UploadStatus.UPLOADING:
                session.status = UploadStatus.IN_PROGRESS
            session.updated_at = time.time()

            await self._persist(session)

    async def mark_uploaded(self, session: UploadSession, final_size: int) -> None:
        """
        Move the session to UPLOADED.

        Must be called with ``session.lock`` held.
        """
        now = time.time()
        session.uploaded_bytes = final_size
        session.status = UploadStatus.UPLOADED
        session.completed_at = now
        session.updated_at = now

        await self._persist(session)

    def list_sessions(self, status: Optional[UploadStatus] = None) -> List[UploadSession]:
        return [
            session for session in self._sessions.values()
            if status is None or session.status == status
        ]

    async def remove(self, upload_id: str, delete_files: bool = True) -> bool:
        """
        Drop a session from the registry.

        With ``delete_files`` the partial file and sidecar are deleted too.
        Final artifacts are never touched.
        """
        async with self._registry_lock:
            session = self._sessions.pop(upload_id, None)

        if session is None:
            return False

        if delete_files:
            paths = [self.sidecar_path(upload_id)]
            if not session.is_finalized:
                paths.append(Path(session.storage_location))
            for path in paths:
                try:
                    if await aiofiles.os.path.exists(path):
                        await aiofiles.os.remove(path)
                except OSError as e:
                    logger.warning(f"Failed to remove {path}: {e}")

        logger.info(f"Removed upload session: {upload_id}")
        return True

    async def recover(self) -> int:
        """
        Reload sessions from their sidecars.

        In-flight sessions whose partial file has disappeared are skipped.

        Returns:
            Number of sessions recovered
        """
        if not self._persist_sessions or not await aiofiles.os.path.isdir(self._upload_dir):
            return 0

        recovered = 0
        for entry in sorted(await aiofiles.os.listdir(self._upload_dir)):
            if not entry.endswith(SIDECAR_SUFFIX):
                continue

            sidecar = self._upload_dir / entry
            try:
                async with aiofiles.open(sidecar, "r", encoding="utf-8") as f:
                    session = UploadSession.from_dict(json.loads(await f.read()))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable session record {sidecar}: {e}")
                continue

            if session.upload_id in self._sessions:
                continue

            if not session.is_finalized and not await aiofiles.os.path.exists(session.storage_location):
                logger.warning(
                    f"Skipping session {session.upload_id}: partial file {session.storage_location} is missing")
                continue

            self._sessions[session.upload_id] = session
            self._issued_ids.add(session.upload_id)
            recovered += 1

        if recovered:
            logger.info(f"Recovered {recovered} upload session(s) from {self._upload_dir}")
        return recovered

    async def _persist(self, session: UploadSession) -> None:
        """Write the session sidecar through a temp file and an atomic replace."""
        if not self._persist_sessions:
            return

        sidecar = self.sidecar_path(session.upload_id)
        temp = sidecar.with_name(sidecar.name + ".tmp")
        try:
            async with aiofiles.open(temp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(session.to_dict()))
            await aiofiles.os.replace(temp, sidecar)
        except OSError as e:
            logger.warning(f"Failed to persist session {session.upload_id}: {e}")

    def __contains__(self, upload_id: object) -> bool:
        return upload_id in self._sessions

    def __iter__(self) -> Iterator[UploadSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)
