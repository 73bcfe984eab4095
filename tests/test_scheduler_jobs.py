from __future__ import annotations

from collections.abc import Iterator

import pytest

from app.config import get_import_queue_settings, get_retention_settings
from app.scheduler.jobs import build_scheduler


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_import_queue_settings.cache_clear()
    get_retention_settings.cache_clear()
    yield
    get_import_queue_settings.cache_clear()
    get_retention_settings.cache_clear()


def test_queue_poll_is_always_registered(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RETENTION_MONTHS", raising=False)
    monkeypatch.setenv("IMPORT_POLL_INTERVAL_SECONDS", "3")

    scheduler = build_scheduler()

    job_ids = {job.id for job in scheduler.get_jobs()}
    assert job_ids == {"import_queue"}
    assert scheduler.get_job("import_queue").max_instances == 1


def test_retention_job_registered_when_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETENTION_MONTHS", "6")

    scheduler = build_scheduler()

    assert {job.id for job in scheduler.get_jobs()} == {"import_queue", "retention_cleanup"}
