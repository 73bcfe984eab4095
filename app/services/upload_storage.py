"""
On-disk staging of uploaded call-record files until a worker imports them.
"""

from __future__ import annotations

import os
import uuid
from functools import lru_cache

from fastapi import UploadFile

from app.config import get_call_record_ingestion_settings

_CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(ValueError):
    """
    Raised when an uploaded file exceeds the configured size limit.
    """


def logical_filename(upload_file: UploadFile) -> str:
    """Client-side file name without any directory part."""
    raw_name = (upload_file.filename or "upload.csv").replace("\\", "/")
    return os.path.basename(raw_name).strip() or "upload.csv"


class UploadStorage:
    def __init__(self, *, upload_dir: str = "uploads", max_file_bytes: int = 10 * 1024 * 1024) -> None:
        self.upload_dir = upload_dir
        self.max_file_bytes = max(1, max_file_bytes)

    def persist(self, upload_file: UploadFile) -> tuple[str, int]:
        """
        Copy the upload to ``upload_dir`` in chunks.

        Returns the stored path and its size. The partial file is removed
        when the size limit is exceeded.
        """

        os.makedirs(self.upload_dir, exist_ok=True)
        _, ext = os.path.splitext(logical_filename(upload_file))
        stored_path = os.path.join(self.upload_dir, f"files-{uuid.uuid4().hex}{ext or '.csv'}")

        upload_file.file.seek(0)
        size = 0
        with open(stored_path, "wb") as stored_file:
            while True:
                chunk = upload_file.file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_file_bytes:
                    break
                stored_file.write(chunk)

        if size > self.max_file_bytes:
            os.remove(stored_path)
            raise UploadTooLargeError(
                f"File exceeds the {self.max_file_bytes} byte upload limit."
            )
        return stored_path, size


@lru_cache(maxsize=1)
def get_upload_storage() -> UploadStorage:
    settings = get_call_record_ingestion_settings()
    return UploadStorage(
        upload_dir=settings.upload_dir,
        max_file_bytes=settings.max_upload_file_bytes,
    )
