"""
Chunk writer: validates one byte-range segment and writes it in place.
"""

import logging
from typing import Optional

import aiofiles

from ....core.domain.exceptions import (
    ChunkLengthMismatch, ChunkWriteError, MalformedRange, PartialMissing,
    SessionAlreadyFinalized, SessionNotFound, SizeMismatch
)
from ....core.domain.ranges import ContentRange
from ....core.domain.session import UploadSession
from ....core.interfaces.upload import IChunkWriter, ISessionStore

logger = logging.getLogger(__name__)


class ChunkWriter(IChunkWriter):
    """
    Applies byte-range chunks to partial files.

    Each write opens its own handle on the partial file and seeks to the
    chunk offset, so chunks may arrive in any order and writes to disjoint
    ranges of the same file can run concurrently. Writing past the current
    end of file leaves a gap that later chunks fill in.

    A write counts itself in ``session.active_writes`` from the moment it
    passes the finalized check until its range is recorded, and finalization
    waits for that count to drop to zero.
    """

    def __init__(self, store: ISessionStore):
        self._store = store

    async def write(
        self,
        upload_id: str,
        content_range: Optional[str],
        payload: bytes
    ) -> UploadSession:
        """
        Validate and apply one chunk.

        Checks run in a fixed order and the first failure is raised.

        Raises:
            SessionNotFound: Unknown upload id
            SessionAlreadyFinalized: The session is already UPLOADED
            MissingRange: No range descriptor
            MalformedRange: Unparsable descriptor, or range outside the file
            SizeMismatch: Declared total differs from the session's file size
            ChunkLengthMismatch: Payload length differs from the range length
            PartialMissing: The partial file disappeared
            ChunkWriteError: The write itself failed
        """
        session = self._store.get(upload_id)
        if session is None:
            raise SessionNotFound(upload_id)

        if session.is_finalized:
            raise SessionAlreadyFinalized(upload_id)

        chunk_range = ContentRange.parse(content_range, upload_id)

        if chunk_range.total != session.file_size:
            raise SizeMismatch(
                expected=session.file_size,
                actual=chunk_range.total,
                upload_id=upload_id
            )

        if chunk_range.end >= session.file_size:
            raise MalformedRange(
                f"Range {chunk_range.start}-{chunk_range.end} lies outside "
                f"the declared file size {session.file_size}",
                upload_id=upload_id,
                contentRange=content_range
            )

        if len(payload) != chunk_range.length:
            raise ChunkLengthMismatch(
                expected=chunk_range.length,
                actual=len(payload),
                upload_id=upload_id
            )

        async with session.lock:
            if self._store.get(upload_id) is not session:
                raise SessionNotFound(upload_id)
            if session.is_finalized:
                raise SessionAlreadyFinalized(upload_id)
            session.active_writes += 1

        try:
            await self._write_at(session, chunk_range.start, payload)
            await self._store.record_chunk(session, chunk_range.start, chunk_range.end)
        finally:
            async with session.lock:
                session.active_writes -= 1
                session.writes_drained.notify_all()

        logger.debug(
            f"Wrote {chunk_range} to {upload_id}, high-water mark {session.uploaded_bytes}")
        return session

    async def _write_at(self, session: UploadSession, offset: int, payload: bytes) -> None:
        """Positional write of ``payload`` at ``offset`` in the partial file."""
        try:
            async with aiofiles.open(session.storage_location, "r+b") as f:
                await f.seek(offset)
                await f.write(payload)
                await f.flush()
        except FileNotFoundError as e:
            raise PartialMissing(session.upload_id, session.storage_location) from e
        except OSError as e:
            raise ChunkWriteError(
                f"Failed to write chunk at offset {offset}: {e}",
                upload_id=session.upload_id,
                offset=offset
            ) from e
