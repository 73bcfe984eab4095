"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status

from app.config import CallRecordIngestionSettings, get_call_record_ingestion_settings


def is_csv_filename(filename: str | None) -> bool:
    return (filename or "").strip().lower().endswith(".csv")


def get_csv_uploads(
    files: list[UploadFile] | None = File(default=None),
    settings: CallRecordIngestionSettings = Depends(get_call_record_ingestion_settings),
) -> list[UploadFile]:
    """
    Validate a multi-file upload: at least one file, at most the configured
    count, and every file named ``*.csv``.
    """

    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded.",
        )

    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. At most {settings.max_upload_files} files are allowed per upload.",
        )

    for upload_file in files:
        if not is_csv_filename(upload_file.filename):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only CSV files are allowed.",
            )

    return files
