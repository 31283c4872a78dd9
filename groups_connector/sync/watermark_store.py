"""Durable storage for the last successful sync time."""

import os
import tempfile
from datetime import datetime
from pathlib import Path

import structlog

from groups_connector.models.group import ensure_utc

log = structlog.stdlib.get_logger()


class WatermarkError(Exception):
    """Raised when the watermark file cannot be read or written."""

    pass


class WatermarkStore:
    """Keeps the sync watermark in a small text file.

    The file holds a single ISO-8601 UTC timestamp. Writes replace the file
    atomically, so a crash leaves either the old or the new value.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def read(self) -> datetime | None:
        """
        Load the watermark.

        Returns:
            The stored timestamp, or None if no pass has succeeded yet

        Raises:
            WatermarkError: If the file exists but is unreadable or corrupt
        """
        try:
            text = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            log.info("no_watermark_found", path=str(self._path))
            return None
        except OSError as e:
            raise WatermarkError(f"Failed to read watermark {self._path}: {e}") from e

        try:
            watermark = ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError as e:
            log.error("invalid_watermark", path=str(self._path), content=text[:100])
            raise WatermarkError(f"Invalid watermark in {self._path}: {text!r}") from e

        log.info("watermark_loaded", watermark=watermark.isoformat())
        return watermark

    def write(self, timestamp: datetime) -> None:
        """
        Persist the watermark, flushing to disk before the rename.

        Raises:
            WatermarkError: If the file cannot be written
        """
        value = ensure_utc(timestamp).isoformat()
        directory = self._path.parent
        tmp_name: str | None = None

        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(value + "\n")
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log.error("failed_to_save_watermark", path=str(self._path), error=str(e))
            raise WatermarkError(f"Failed to save watermark {self._path}: {e}") from e

        log.info("watermark_saved", watermark=value)
