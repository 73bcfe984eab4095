"""
app/services/quarantine.py

Per-run artifact listing the lines that failed validation.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import TextIO

from app.domain.call_record import RejectedLine
from db.base import utcnow

logger = logging.getLogger(__name__)


class QuarantineWriteError(RuntimeError):
    """
    Raised when the quarantine artifact cannot be created or written.
    """


def build_quarantine_filename(now: datetime) -> str:
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"invalid-rows-{timestamp}-{uuid.uuid4().hex[:8]}.log"


class QuarantineLog:
    """
    Streams rejected lines to ``invalid-rows-<timestamp>.log``.

    The file is only created on the first rejection, so a clean run leaves
    no artifact behind. Entries are written as they arrive instead of being
    held in memory.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._directory = Path(directory)
        self._clock = clock
        self._handle: TextIO | None = None
        self._path: Path | None = None
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def path(self) -> str | None:
        return str(self._path) if self._path is not None else None

    def record(self, rejected: RejectedLine) -> None:
        handle = self._handle if self._handle is not None else self._open()
        label = "Line" if rejected.line_number is None else f"Line {rejected.line_number}"
        entry = f"Reason: {rejected.reason}\n{label}: {rejected.line}\n"
        try:
            if self._count:
                handle.write("\n")
            handle.write(entry)
        except OSError as exc:
            raise QuarantineWriteError(f"Failed to write quarantine log {self._path}.") from exc
        self._count += 1

    def close(self) -> str | None:
        """
        Close the artifact and return its path, or None if nothing was rejected.
        """

        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as exc:
                raise QuarantineWriteError(f"Failed to close quarantine log {self._path}.") from exc
            finally:
                self._handle = None
        return self.path

    def __enter__(self) -> QuarantineLog:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        # Already failing; do not mask the original error.
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError:
                logger.warning("Could not close quarantine log %s", self._path)
            self._handle = None

    def _open(self) -> TextIO:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path = self._directory / build_quarantine_filename(self._clock())
            self._handle = path.open("x", encoding="utf-8")
        except OSError as exc:
            raise QuarantineWriteError(
                f"Failed to create quarantine log in {self._directory}."
            ) from exc
        self._path = path
        return self._handle
