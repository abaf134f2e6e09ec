"""
Upload error taxonomy.

Every failure of the upload engine is raised as a subclass of
:class:`UploadError`. Each error carries a stable ``error_code`` and a
``details`` dictionary with the offending values so the transport layer can
build a response the client can act on.
"""

from typing import Any, Dict, List, Optional, Tuple


class UploadError(Exception):
    """Base class for all upload engine errors."""

    error_code = "UPLOAD_ERROR"

    def __init__(self, message: str, upload_id: Optional[str] = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.upload_id = upload_id
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for a response body."""
        data: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.upload_id is not None:
            data["uploadId"] = self.upload_id
        data.update(self.details)
        return data


class SessionNotFound(UploadError):
    """No session is registered under the given upload id."""

    error_code = "SESSION_NOT_FOUND"

    def __init__(self, upload_id: str) -> None:
        super().__init__("Upload session not found", upload_id=upload_id)


class AllocationError(UploadError):
    """The partial storage object could not be created."""

    error_code = "ALLOCATION_ERROR"


class MalformedRange(UploadError):
    """The range descriptor is not of the form ``bytes <start>-<end>/<total>``."""

    error_code = "MALFORMED_RANGE"


class MissingRange(MalformedRange):
    """The request carried no range descriptor at all."""

    error_code = "MISSING_RANGE"

    def __init__(self, upload_id: Optional[str] = None) -> None:
        super().__init__("Missing Content-Range header", upload_id=upload_id)


class SizeMismatch(UploadError):
    """A size did not match the size declared when the session was created."""

    error_code = "SIZE_MISMATCH"

    def __init__(self, expected: int, actual: int, upload_id: Optional[str] = None) -> None:
        super().__init__(
            f"File size mismatch. Expected {expected}, got {actual}",
            upload_id=upload_id,
            expected=expected,
            actual=actual,
        )
        self.expected = expected
        self.actual = actual


class ChunkLengthMismatch(UploadError):
    """The payload length differs from the length implied by the range."""

    error_code = "CHUNK_LENGTH_MISMATCH"

    def __init__(self, expected: int, actual: int, upload_id: Optional[str] = None) -> None:
        super().__init__(
            f"Chunk size mismatch. Expected {expected}, got {actual}",
            upload_id=upload_id,
            expected=expected,
            actual=actual,
        )
        self.expected = expected
        self.actual = actual


class PartialMissing(UploadError):
    """The partial storage object is gone although the session expects it."""

    error_code = "PARTIAL_MISSING"

    def __init__(self, upload_id: str, path: str) -> None:
        super().__init__("Part file not found", upload_id=upload_id, path=path)


class IncompleteUpload(UploadError):
    """The partial object has the right size but some ranges were never written."""

    error_code = "INCOMPLETE_UPLOAD"

    def __init__(self, upload_id: str, missing: List[Tuple[int, int]]) -> None:
        super().__init__(
            f"Upload incomplete, {len(missing)} byte range(s) never received",
            upload_id=upload_id,
            missingRanges=[[start, end] for start, end in missing],
        )
        self.missing = missing


class SessionAlreadyFinalized(UploadError):
    """The session reached UPLOADED and accepts no further writes."""

    error_code = "SESSION_ALREADY_FINALIZED"

    def __init__(self, upload_id: str) -> None:
        super().__init__("Upload session already finalized", upload_id=upload_id)


class ChunkWriteError(UploadError):
    """The positional write into the partial object failed."""

    error_code = "CHUNK_WRITE_ERROR"


class FinalizationError(UploadError):
    """Promoting the partial object to its final location failed."""

    error_code = "FINALIZATION_ERROR"
