"""
tests/test_call_record_router.py

HTTP behaviour of the /call-record endpoints with service dependencies
overridden to use SQLite and temporary directories.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.api.routers import call_record_router
from app.config import CallRecordIngestionSettings, get_call_record_ingestion_settings
from app.services.call_record_ingestion_service import CallRecordIngestionService
from app.services.import_queue_service import ImportQueueService, get_import_queue_service
from app.services.report_cache import InMemoryReportCache
from app.services.report_service import CallRecordReportService, get_call_record_report_service
from app.services.upload_storage import UploadStorage, get_upload_storage
from db.session import get_db

CSV_BODY = b"20250706,083015,,,0,\n20250706,084500,,,1,\n20250706,085959,,,2,\n"


@pytest.fixture()
def queue(tmp_path: Path, session_factory: sessionmaker[Session]) -> ImportQueueService:
    return ImportQueueService(
        session_factory=session_factory,
        ingestion_service=CallRecordIngestionService(quarantine_dir=str(tmp_path / "logs")),
        report_cache=InMemoryReportCache(),
        worker_id="test-worker",
    )


@pytest.fixture()
def client(
    tmp_path: Path,
    session_factory: sessionmaker[Session],
    queue: ImportQueueService,
) -> Iterator[TestClient]:
    application = FastAPI()
    application.include_router(call_record_router)

    def _get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    report_service = CallRecordReportService(report_cache=InMemoryReportCache())
    storage = UploadStorage(upload_dir=str(tmp_path / "uploads"), max_file_bytes=1024)

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_import_queue_service] = lambda: queue
    application.dependency_overrides[get_call_record_report_service] = lambda: report_service
    application.dependency_overrides[get_upload_storage] = lambda: storage
    application.dependency_overrides[get_call_record_ingestion_settings] = (
        lambda: CallRecordIngestionSettings(max_upload_files=3)
    )

    yield TestClient(application)


def _csv(name: str, body: bytes = CSV_BODY) -> tuple[str, tuple[str, bytes, str]]:
    return ("files", (name, body, "text/csv"))


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestUpload:
    def test_queues_new_files(self, client: TestClient) -> None:
        response = client.post("/call-record/upload-multiple", files=[_csv("a.csv"), _csv("b.csv")])

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == {"total_files": 2, "queued": 2, "skipped": 0, "errors": 0}
        assert [detail["status"] for detail in body["details"]] == ["queued", "queued"]
        assert all(detail["job_id"] for detail in body["details"])

    def test_duplicate_upload_is_skipped(self, client: TestClient, queue: ImportQueueService) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])
        queue.process_available()

        response = client.post("/call-record/upload-multiple", files=[_csv("a.csv")])

        body = response.json()
        assert body["summary"]["skipped"] == 1
        assert body["details"][0]["reason"] == "Already uploaded"

    def test_overwrite_flag_requeues(self, client: TestClient, queue: ImportQueueService) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])
        queue.process_available()

        response = client.post(
            "/call-record/upload-multiple",
            params={"overwrite": "true"},
            files=[_csv("a.csv")],
        )

        assert response.json()["summary"]["queued"] == 1

    def test_rejects_non_csv(self, client: TestClient) -> None:
        response = client.post(
            "/call-record/upload-multiple",
            files=[_csv("a.csv"), ("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed."

    def test_rejects_too_many_files(self, client: TestClient) -> None:
        files = [_csv(f"{index}.csv") for index in range(4)]

        response = client.post("/call-record/upload-multiple", files=files)

        assert response.status_code == 400

    def test_oversized_file_is_reported_as_error(self, client: TestClient) -> None:
        response = client.post(
            "/call-record/upload-multiple",
            files=[_csv("big.csv", b"x" * 2048), _csv("small.csv")],
        )

        body = response.json()
        assert response.status_code == 200
        assert body["summary"] == {"total_files": 2, "queued": 1, "skipped": 0, "errors": 1}
        assert body["details"][0]["status"] == "error"


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestReports:
    def test_report_and_summary_after_import(self, client: TestClient, queue: ImportQueueService) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])
        queue.process_available()

        report = client.get("/call-record/report", params={"date": "06-07-2025"})
        summary = client.get("/call-record/summary", params={"date": "2025-07-06"})

        assert report.status_code == 200
        rows = report.json()
        assert len(rows) == 24
        assert rows[8] == {
            "time": "08.00 - 08.59",
            "qty": 3,
            "te_busy": 1,
            "te_busy_percent": "33.33%",
            "sys_busy": 1,
            "sys_busy_percent": "33.33%",
            "others": 1,
            "others_percent": "33.33%",
        }
        assert summary.status_code == 200
        assert summary.json()["qty"] == 3
        assert summary.json()["date"] == "06-07-2025"

    def test_invalid_date_is_bad_request(self, client: TestClient) -> None:
        assert client.get("/call-record/report", params={"date": "2025/07/06"}).status_code == 400
        assert client.get("/call-record/summary", params={"date": "31-02-2025"}).status_code == 400

    def test_missing_date_is_bad_request(self, client: TestClient) -> None:
        response = client.get("/call-record/report")

        assert response.status_code == 400
        assert "date" in response.json()["detail"].lower()

    def test_files_listing(self, client: TestClient, queue: ImportQueueService) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])
        queue.process_available()

        response = client.get("/call-record/files")

        assert response.status_code == 200
        entries = response.json()
        assert [entry["source"] for entry in entries] == ["a.csv"]
        assert entries[0]["count"] == 3

    def test_cleanup_reports_deleted_count(self, client: TestClient, queue: ImportQueueService) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])
        queue.process_available()

        response = client.delete("/call-record/cleanup", params={"months": 6})

        assert response.status_code == 200
        assert response.json()["deleted"] == 3

    def test_jobs_listing(self, client: TestClient) -> None:
        client.post("/call-record/upload-multiple", files=[_csv("a.csv")])

        response = client.get("/call-record/jobs")

        assert response.status_code == 200
        jobs = response.json()["jobs"]
        assert len(jobs) == 1
        assert jobs[0]["filename"] == "a.csv"
        assert jobs[0]["status"] == "queued"
