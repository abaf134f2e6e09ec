"""
Tests for the upload HTTP API.

The application is built the way ``start`` builds it and driven through
FastAPI's TestClient, so the lifespan starts and stops every component.
"""

import asyncio
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from resumable_upload.application.container import Container
from resumable_upload.application.startup import ApplicationStartup
from resumable_upload.infrastructure.config.models import (
    ApplicationConfig, LoggingConfig, StorageConfig
)
from resumable_upload.presentation.api.app import create_app


@pytest.fixture
def config(tmp_path: Path) -> ApplicationConfig:
    return ApplicationConfig(
        storage=StorageConfig(upload_directory=str(tmp_path / "uploads"), cleanup_interval=0),
        logging=LoggingConfig(file_enabled=False, log_directory=str(tmp_path / "logs"))
    )


@pytest.fixture
def client(config: ApplicationConfig) -> Iterator[TestClient]:
    container = Container()
    startup = ApplicationStartup(container)
    asyncio.run(startup.configure_services(config))

    app = create_app(container, config, startup)
    with TestClient(app) as test_client:
        yield test_client


def initiate(client: TestClient, file_name: str = "a.mp4", file_size: int = 10) -> str:
    response = client.post("/upload/initiate", json={"fileName": file_name, "fileSize": file_size})
    assert response.status_code == 200
    return response.json()["uploadId"]


def put_chunk(client: TestClient, upload_id: str, content_range: str, payload: bytes):
    return client.put(
        f"/upload/{upload_id}",
        content=payload,
        headers={"Content-Range": content_range}
    )


class TestInitiate:
    """Test cases for POST /upload/initiate."""

    def test_initiate(self, client: TestClient) -> None:
        response = client.post(
            "/upload/initiate",
            json={"fileName": "a.mp4", "fileSize": 10, "contentType": "video/mp4"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "UPLOADING"
        assert body["uploadedBytes"] == 0
        assert body["targetPath"].endswith(f"{body['uploadId']}.part")
        assert Path(body["targetPath"]).exists()

    @pytest.mark.parametrize("payload", [
        {"fileSize": 10},
        {"fileName": "a.mp4"},
        {"fileName": "a.mp4", "fileSize": -1},
        {"fileName": "a.mp4", "fileSize": "ten"},
    ])
    def test_missing_or_invalid_fields(self, client: TestClient, payload: dict) -> None:
        response = client.post("/upload/initiate", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_REQUIRED_FIELDS"

    def test_empty_file_name_accepted(self, client: TestClient) -> None:
        response = client.post("/upload/initiate", json={"fileName": "", "fileSize": 3})

        assert response.status_code == 200
        assert response.json()["status"] == "UPLOADING"

    def test_wrong_verb(self, client: TestClient) -> None:
        response = client.get("/upload/initiate")
        assert response.status_code == 405


class TestChunkUpload:
    """Test cases for PUT /upload/{uploadId}."""

    def test_chunk_progress(self, client: TestClient) -> None:
        upload_id = initiate(client)

        response = put_chunk(client, upload_id, "bytes 0-4/10", b"01234")

        assert response.status_code == 200
        assert response.json() == {
            "uploadId": upload_id,
            "status": "IN_PROGRESS",
            "uploadedBytes": 5,
            "nextExpectedByte": 5,
        }

    def test_unknown_session(self, client: TestClient) -> None:
        response = put_chunk(client, "missing", "bytes 0-4/10", b"01234")

        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"

    def test_missing_content_range(self, client: TestClient) -> None:
        upload_id = initiate(client)

        response = client.put(f"/upload/{upload_id}", content=b"01234")

        assert response.status_code == 411
        assert response.json()["error"] == "MISSING_RANGE"

    def test_malformed_content_range(self, client: TestClient) -> None:
        upload_id = initiate(client)

        response = put_chunk(client, upload_id, "bytes 0-4", b"01234")

        assert response.status_code == 400
        assert response.json()["error"] == "MALFORMED_RANGE"

    def test_total_size_mismatch(self, client: TestClient) -> None:
        upload_id = initiate(client)

        response = put_chunk(client, upload_id, "bytes 0-4/12", b"01234")

        assert response.status_code == 400
        assert response.json()["message"] == "File size mismatch. Expected 10, got 12"

    def test_chunk_length_mismatch(self, client: TestClient) -> None:
        upload_id = initiate(client, file_size=8)

        response = put_chunk(client, upload_id, "bytes 0-5/8", b"12345")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "CHUNK_LENGTH_MISMATCH"
        assert body["expected"] == 6
        assert body["actual"] == 5


class TestComplete:
    """Test cases for POST /upload/{uploadId}/complete."""

    def test_two_chunk_upload(self, client: TestClient) -> None:
        upload_id = initiate(client)
        assert put_chunk(client, upload_id, "bytes 0-4/10", b"hello").status_code == 200
        assert put_chunk(client, upload_id, "bytes 5-9/10", b"world").json()["uploadedBytes"] == 10

        response = client.post(f"/upload/{upload_id}/complete")

        assert response.status_code == 200
        body = response.json()
        assert body["uploadId"] == upload_id
        assert body["status"] == "UPLOADED"
        assert body["fileSize"] == 10
        assert body["finalPath"].endswith(f"{upload_id}.mp4")
        assert Path(body["finalPath"]).read_bytes() == b"helloworld"

    def test_complete_unknown_session(self, client: TestClient) -> None:
        response = client.post("/upload/missing/complete")

        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"

    def test_complete_without_chunks(self, client: TestClient) -> None:
        upload_id = initiate(client)

        response = client.post(f"/upload/{upload_id}/complete")

        assert response.status_code == 400
        assert response.json()["error"] == "SIZE_MISMATCH"

    def test_complete_with_gap(self, client: TestClient) -> None:
        upload_id = initiate(client)
        put_chunk(client, upload_id, "bytes 5-9/10", b"world")

        response = client.post(f"/upload/{upload_id}/complete")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "INCOMPLETE_UPLOAD"
        assert body["missingRanges"] == [[0, 4]]

    def test_complete_partial_missing(self, client: TestClient) -> None:
        body = client.post("/upload/initiate", json={"fileName": "b.mp4", "fileSize": 1}).json()
        Path(body["targetPath"]).unlink()

        response = client.post(f"/upload/{body['uploadId']}/complete")

        assert response.status_code == 404
        assert response.json()["error"] == "PARTIAL_MISSING"

    def test_writes_after_completion_conflict(self, client: TestClient) -> None:
        upload_id = initiate(client, file_size=5)
        put_chunk(client, upload_id, "bytes 0-4/5", b"hello")
        assert client.post(f"/upload/{upload_id}/complete").status_code == 200

        chunk = put_chunk(client, upload_id, "bytes 0-4/5", b"hello")
        again = client.post(f"/upload/{upload_id}/complete")

        assert chunk.status_code == 409
        assert again.status_code == 409
        assert again.json()["error"] == "SESSION_ALREADY_FINALIZED"


class TestStatus:
    """Test cases for session inspection routes."""

    def test_status_view(self, client: TestClient) -> None:
        upload_id = initiate(client)
        put_chunk(client, upload_id, "bytes 5-9/10", b"world")

        response = client.get(f"/upload/{upload_id}/status")

        assert response.status_code == 200
        body = response.json()
        assert body["uploadId"] == upload_id
        assert body["fileName"] == "a.mp4"
        assert body["status"] == "IN_PROGRESS"
        assert body["uploadedBytes"] == 10
        assert body["receivedRanges"] == [[5, 9]]
        assert body["missingRanges"] == [[0, 4]]

    def test_status_unknown(self, client: TestClient) -> None:
        assert client.get("/upload/missing/status").status_code == 404

    def test_list_and_statistics(self, client: TestClient) -> None:
        initiate(client)
        initiate(client, "b.mp4", 20)

        listing = client.get("/upload/").json()
        stats = client.get("/upload/statistics").json()

        assert listing["count"] == 2
        assert stats["total_uploads"] == 2
        assert stats["active_uploads"] == 2

        filtered = client.get("/upload/", params={"status": "UPLOADED"}).json()
        assert filtered["count"] == 0
