"""
Finalizer: promotes a fully received partial file to its final artifact.
"""

import logging

import aiofiles.os

from ....core.domain.exceptions import (
    FinalizationError, IncompleteUpload, PartialMissing, SessionAlreadyFinalized,
    SessionNotFound, SizeMismatch
)
from ....core.domain.session import UploadSession
from ....core.interfaces.upload import IFinalizer, ISessionStore

logger = logging.getLogger(__name__)


class Finalizer(IFinalizer):
    """
    Validates and renames partial files into place, exactly once per session.

    The on-disk length of the partial file is the authoritative size check.
    With ``require_complete_coverage`` the received ranges must also cover
    the whole file, which rejects sparse files whose gaps were never written.
    """

    def __init__(self, store: ISessionStore, require_complete_coverage: bool = True):
        self._store = store
        self._require_complete_coverage = require_complete_coverage

    @property
    def require_complete_coverage(self) -> bool:
        return self._require_complete_coverage

    async def finalize(self, upload_id: str) -> UploadSession:
        """
        Finalize an upload session.

        A failed rename leaves the session untouched so the client can retry.

        Raises:
            SessionNotFound: Unknown upload id
            SessionAlreadyFinalized: The session is already UPLOADED
            PartialMissing: The partial file does not exist
            SizeMismatch: Partial file length differs from the declared size
            IncompleteUpload: Some byte ranges were never received
            FinalizationError: The rename failed
        """
        session = self._store.get(upload_id)
        if session is None:
            raise SessionNotFound(upload_id)

        async with session.lock:
            await session.writes_drained.wait_for(lambda: session.active_writes == 0)

            if session.is_finalized:
                raise SessionAlreadyFinalized(upload_id)

            partial = session.storage_location
            if not await aiofiles.os.path.exists(partial):
                raise PartialMissing(upload_id, partial)

            actual_size = await aiofiles.os.path.getsize(partial)
            if actual_size != session.file_size:
                raise SizeMismatch(
                    expected=session.file_size,
                    actual=actual_size,
                    upload_id=upload_id
                )

            if self._require_complete_coverage and not session.received.covers(session.file_size):
                raise IncompleteUpload(upload_id, session.received.missing(session.file_size))

            try:
                await aiofiles.os.rename(partial, session.final_location)
            except OSError as e:
                logger.error(f"Failed to finalize upload {upload_id}: {e}")
                raise FinalizationError(
                    "Failed to finalize file",
                    upload_id=upload_id,
                    path=session.final_location
                ) from e

            await self._store.mark_uploaded(session, actual_size)

        logger.info(f"Upload completed: {upload_id} -> {session.final_location} ({actual_size} bytes)")
        return session
