"""
Resumable upload API endpoints.

Clients initiate a session, send the file as byte-range chunks with a
``Content-Range`` header and then ask the server to complete the upload.
Engine errors propagate to the application's exception handlers.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, ConfigDict, Field

from ....core.domain.exceptions import SessionNotFound
from ....core.domain.session import UploadSession, UploadStatus
from ....core.interfaces.upload import IUploadManager
from ..dependencies import get_upload_manager

router = APIRouter()


class InitiateUploadRequest(BaseModel):
    """Body of an initiate request."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    file_size: int = Field(..., alias="fileSize", ge=0)
    content_type: Optional[str] = Field(None, alias="contentType")


def session_view(session: UploadSession) -> Dict[str, Any]:
    """Full client-facing view of a session."""
    return {
        "uploadId": session.upload_id,
        "fileName": session.file_name,
        "fileSize": session.file_size,
        "contentType": session.content_type,
        "status": session.status.value,
        "uploadedBytes": session.uploaded_bytes,
        "nextExpectedByte": session.next_expected_byte,
        "progress": round(session.progress_percentage, 2),
        "receivedRanges": session.received.to_list(),
        "missingRanges": session.missing_ranges(),
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
        "completedAt": session.completed_at,
    }


@router.post("/initiate")
async def initiate_upload(
    body: InitiateUploadRequest,
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    """Create an upload session and allocate its partial file."""
    session = await manager.initiate(body.file_name, body.file_size, body.content_type)

    return {
        "uploadId": session.upload_id,
        "status": session.status.value,
        "uploadedBytes": session.uploaded_bytes,
        "targetPath": session.storage_location,
    }


@router.get("/")
async def list_uploads(
    status: Optional[UploadStatus] = None,
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    sessions: List[UploadSession] = manager.list_sessions(status)

    return {
        "uploads": [session_view(s) for s in sessions],
        "count": len(sessions),
    }


@router.get("/statistics")
async def upload_statistics(
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    return manager.get_upload_statistics()


@router.put("/{upload_id}")
async def upload_chunk(
    upload_id: str,
    request: Request,
    content_range: Optional[str] = Header(None),
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    """
    Write one chunk.

    The raw request body is the chunk payload; ``Content-Range`` carries
    ``bytes <start>-<end>/<total>`` with an inclusive end offset.
    """
    # Unknown sessions are rejected before the body is read
    if manager.get_session(upload_id) is None:
        raise SessionNotFound(upload_id)

    payload = await request.body()
    session = await manager.upload_chunk(upload_id, content_range, payload)

    return {
        "uploadId": session.upload_id,
        "status": session.status.value,
        "uploadedBytes": session.uploaded_bytes,
        "nextExpectedByte": session.next_expected_byte,
    }


@router.post("/{upload_id}/complete")
async def complete_upload(
    upload_id: str,
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    """Verify the partial file and promote it to the final artifact."""
    session = await manager.complete(upload_id)

    return {
        "uploadId": session.upload_id,
        "status": session.status.value,
        "finalPath": session.final_location,
        "fileSize": session.uploaded_bytes,
    }


@router.get("/{upload_id}/status")
async def upload_status(
    upload_id: str,
    manager: IUploadManager = Depends(get_upload_manager)
) -> Dict[str, Any]:
    session = manager.get_session(upload_id)
    if session is None:
        raise SessionNotFound(upload_id)

    return session_view(session)
