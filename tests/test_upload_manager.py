"""
Tests for upload manager functionality.

This module tests the upload manager service: lifecycle, the upload flow,
event publishing, statistics and expiry of abandoned sessions.
"""

import time
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock, patch

import pytest

from resumable_upload.core.domain.events import UploadEvents
from resumable_upload.core.domain.exceptions import ChunkLengthMismatch, SessionNotFound, SizeMismatch
from resumable_upload.core.domain.session import UploadStatus
from resumable_upload.core.interfaces.messaging import IEventBus
from resumable_upload.core.interfaces.upload import IUploadManager
from resumable_upload.infrastructure.config.models import StorageConfig
from resumable_upload.infrastructure.services.upload.manager import UploadManager
from resumable_upload.infrastructure.services.upload.store import SessionStore


def published_names(event_bus: Mock) -> list:
    return [call.args[0] for call in event_bus.publish.call_args_list]


class TestUploadManager:
    """Test cases for UploadManager."""

    @pytest.fixture
    def mock_event_bus(self) -> Mock:
        mock_bus = Mock(spec=IEventBus)
        mock_bus.publish = AsyncMock()
        return mock_bus

    @pytest.fixture
    def storage_config(self, tmp_path: Path) -> StorageConfig:
        return StorageConfig(upload_directory=str(tmp_path / "uploads"), cleanup_interval=0)

    @pytest.fixture
    async def upload_manager(
        self,
        storage_config: StorageConfig,
        mock_event_bus: Mock
    ) -> AsyncGenerator[UploadManager, None]:
        manager = UploadManager(storage_config, event_bus=mock_event_bus)
        await manager.start()
        yield manager
        await manager.stop()

    def test_upload_manager_creation(self, storage_config: StorageConfig) -> None:
        manager = UploadManager(storage_config)

        assert isinstance(manager, IUploadManager)
        assert manager.name == "UploadManager"
        assert manager.store.upload_dir == Path(storage_config.upload_directory)

    @pytest.mark.asyncio
    async def test_start_creates_upload_directory(self, upload_manager: UploadManager) -> None:
        assert upload_manager.store.upload_dir.is_dir()

        health = await upload_manager.check_health()
        assert health["healthy"] is True
        assert health["status"] == "running"
        assert health["details"]["upload_directory_writable"] is True

    @pytest.mark.asyncio
    async def test_stopped_manager_is_unhealthy(self, storage_config: StorageConfig) -> None:
        manager = UploadManager(storage_config)

        health = await manager.check_health()

        assert health["healthy"] is False
        assert health["status"] == "stopped"

    @pytest.mark.asyncio
    async def test_full_upload_flow(self, upload_manager: UploadManager, mock_event_bus: Mock) -> None:
        session = await upload_manager.initiate("a.mp4", 10)
        assert session.status == UploadStatus.UPLOADING

        session = await upload_manager.upload_chunk(session.upload_id, "bytes 0-4/10", b"01234")
        assert session.status == UploadStatus.IN_PROGRESS
        assert session.uploaded_bytes == 5

        await upload_manager.upload_chunk(session.upload_id, "bytes 5-9/10", b"56789")
        session = await upload_manager.complete(session.upload_id)

        assert session.status == UploadStatus.UPLOADED
        assert Path(session.final_location).read_bytes() == b"0123456789"
        assert published_names(mock_event_bus) == [
            UploadEvents.CREATED,
            UploadEvents.CHUNK_WRITTEN,
            UploadEvents.CHUNK_WRITTEN,
            UploadEvents.COMPLETED,
        ]

        stats = upload_manager.get_upload_statistics()
        assert stats["total_uploads"] == 1
        assert stats["completed_uploads"] == 1
        assert stats["total_bytes_received"] == 10
        assert stats["active_uploads"] == 0

    @pytest.mark.asyncio
    async def test_rejected_chunk_counted_and_reraised(self, upload_manager: UploadManager) -> None:
        session = await upload_manager.initiate("a.mp4", 8)

        with pytest.raises(ChunkLengthMismatch):
            await upload_manager.upload_chunk(session.upload_id, "bytes 0-5/8", b"12345")

        assert upload_manager.get_upload_statistics()["failed_chunks"] == 1

    @pytest.mark.asyncio
    async def test_failed_completion_publishes_event(
        self, upload_manager: UploadManager, mock_event_bus: Mock
    ) -> None:
        session = await upload_manager.initiate("a.mp4", 10)

        with pytest.raises(SizeMismatch):
            await upload_manager.complete(session.upload_id)

        name, data = mock_event_bus.publish.call_args.args
        assert name == UploadEvents.FAILED
        assert data["error"] == "SIZE_MISMATCH"
        assert upload_manager.get_upload_statistics()["failed_completions"] == 1

    @pytest.mark.asyncio
    async def test_complete_unknown_session(self, upload_manager: UploadManager) -> None:
        with pytest.raises(SessionNotFound):
            await upload_manager.complete("missing")

    @pytest.mark.asyncio
    async def test_event_bus_failure_does_not_fail_upload(
        self, upload_manager: UploadManager, mock_event_bus: Mock
    ) -> None:
        mock_event_bus.publish.side_effect = RuntimeError("Event bus is not running")

        session = await upload_manager.initiate("a.mp4", 1)

        assert upload_manager.get_session(session.upload_id) is session

    @pytest.mark.asyncio
    async def test_works_without_event_bus(self, storage_config: StorageConfig) -> None:
        manager = UploadManager(storage_config)
        await manager.start()
        try:
            session = await manager.initiate("a.mp4", 0)
            session = await manager.complete(session.upload_id)
            assert session.status == UploadStatus.UPLOADED
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_list_sessions_and_statistics(self, upload_manager: UploadManager) -> None:
        first = await upload_manager.initiate("a.mp4", 10)
        await upload_manager.initiate("b.mp4", 20)
        await upload_manager.upload_chunk(first.upload_id, "bytes 0-2/10", b"abc")

        assert len(upload_manager.list_sessions()) == 2
        assert upload_manager.list_sessions(UploadStatus.IN_PROGRESS) == [first]

        stats = upload_manager.get_upload_statistics()
        assert stats["active_uploads"] == 2
        assert stats["total_active_size"] == 30
        assert stats["total_uploaded_size"] == 3

    @pytest.mark.asyncio
    async def test_cleanup_expired_sessions(
        self, upload_manager: UploadManager, mock_event_bus: Mock
    ) -> None:
        stale = await upload_manager.initiate("stale.mp4", 10)
        fresh = await upload_manager.initiate("fresh.mp4", 10)
        stale.updated_at = time.time() - 3 * 3600

        cleaned = await upload_manager.cleanup_expired_sessions(older_than_hours=1)

        assert cleaned == 1
        assert upload_manager.get_session(stale.upload_id) is None
        assert upload_manager.get_session(fresh.upload_id) is fresh
        assert not Path(stale.storage_location).exists()
        assert published_names(mock_event_bus)[-1] == UploadEvents.EXPIRED
        assert upload_manager.get_upload_statistics()["expired_uploads"] == 1

    @pytest.mark.asyncio
    async def test_cleanup_keeps_completed_artifacts(self, upload_manager: UploadManager) -> None:
        session = await upload_manager.initiate("done.mp4", 0)
        await upload_manager.complete(session.upload_id)
        session.updated_at = time.time() - 48 * 3600

        assert await upload_manager.cleanup_expired_sessions() == 1
        assert Path(session.final_location).exists()
        assert upload_manager.get_upload_statistics()["expired_uploads"] == 0

    @pytest.mark.asyncio
    async def test_cleanup_skips_busy_sessions(self, upload_manager: UploadManager) -> None:
        session = await upload_manager.initiate("busy.mp4", 10)
        session.updated_at = 0

        async with session.lock:
            assert await upload_manager.cleanup_expired_sessions() == 0

        assert upload_manager.get_session(session.upload_id) is session

    @pytest.mark.asyncio
    async def test_initiate_session_vanished_before_lookup(self, upload_manager: UploadManager) -> None:
        with patch.object(upload_manager.store, "get", return_value=None):
            with pytest.raises(SessionNotFound):
                await upload_manager.initiate("gone.mp4", 10)

        assert upload_manager.get_upload_statistics()["total_uploads"] == 0

    @pytest.mark.asyncio
    async def test_cleanup_skips_sessions_with_writes_in_flight(self, upload_manager: UploadManager) -> None:
        session = await upload_manager.initiate("busy.mp4", 10)
        session.updated_at = 0
        session.active_writes = 1

        assert await upload_manager.cleanup_expired_sessions() == 0
        assert Path(session.storage_location).exists()

        session.active_writes = 0
        assert await upload_manager.cleanup_expired_sessions() == 1
        assert upload_manager.get_session(session.upload_id) is None

    @pytest.mark.asyncio
    async def test_start_recovers_sessions(self, storage_config: StorageConfig, mock_event_bus: Mock) -> None:
        first = UploadManager(storage_config)
        await first.start()
        session = await first.initiate("a.mp4", 10)
        await first.upload_chunk(session.upload_id, "bytes 0-4/10", b"01234")
        await first.stop()

        second = UploadManager(storage_config, event_bus=mock_event_bus)
        await second.start()
        try:
            restored = second.get_session(session.upload_id)
            assert restored is not None
            assert restored.uploaded_bytes == 5

            await second.upload_chunk(session.upload_id, "bytes 5-9/10", b"56789")
            completed = await second.complete(session.upload_id)
            assert Path(completed.final_location).read_bytes() == b"0123456789"
            assert second.get_upload_statistics()["recovered_uploads"] == 1
            assert published_names(mock_event_bus)[0] == UploadEvents.RECOVERED
        finally:
            await second.stop()

    @pytest.mark.asyncio
    async def test_configure_toggles_coverage(self, upload_manager: UploadManager) -> None:
        session = await upload_manager.initiate("a.mp4", 4)
        await upload_manager.upload_chunk(session.upload_id, "bytes 2-3/4", b"cd")

        await upload_manager.configure({"require_complete_coverage": False})
        session = await upload_manager.complete(session.upload_id)

        assert session.status == UploadStatus.UPLOADED
        assert upload_manager.config.require_complete_coverage is False

    @pytest.mark.asyncio
    async def test_cleanup_task_lifecycle(self, storage_config: StorageConfig) -> None:
        storage_config.cleanup_interval = 3600
        manager = UploadManager(storage_config)

        await manager.start()
        assert manager._cleanup_task is not None
        assert not manager._cleanup_task.done()

        await manager.stop()
        assert manager._cleanup_task is None
