from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from .errors import ArtifactNotFoundError, StorageInitError
from .validation import sanitize_filename

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Raw uploads and processed output on the local filesystem.

    Locations handed out are absolute path strings; callers treat them as
    opaque.
    """

    def __init__(self, upload_dir: Path | str, download_dir: Path | str) -> None:
        self.upload_dir = Path(upload_dir).resolve()
        self.download_dir = Path(download_dir).resolve()
        for folder in (self.upload_dir, self.download_dir):
            try:
                folder.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageInitError(f"Failed to create storage directory {folder}: {exc}") from exc
            if not os.access(folder, os.W_OK):
                raise StorageInitError(f"Storage directory is not writable: {folder}")

    def upload_name(self, job_id: str, filename: str) -> str:
        timestamp = int(time.time())
        return f"{job_id}_{timestamp}_{sanitize_filename(filename)}"

    def save(self, data: bytes, job_id: str, filename: str = "upload.csv") -> str:
        path = self.upload_dir / self.upload_name(job_id, filename)
        self._write(path, data)
        logger.debug("Stored upload for job %s at %s (%d bytes)", job_id, path, len(data))
        return str(path)

    def save_output(self, data: bytes, name: str) -> str:
        path = self.download_dir / sanitize_filename(name)
        self._write(path, data)
        logger.debug("Stored output %s (%d bytes)", path, len(data))
        return str(path)

    def read(self, location: str) -> bytes:
        path = Path(location)
        if not path.is_file():
            raise ArtifactNotFoundError(location)
        return path.read_bytes()

    def exists(self, location: str) -> bool:
        try:
            return Path(location).is_file()
        except (OSError, ValueError):
            return False

    def delete(self, location: str) -> None:
        path = Path(location)
        if not path.is_file():
            raise ArtifactNotFoundError(location)
        path.unlink()

    def resolve(self, name: str) -> str:
        path = self.download_dir / Path(name).name
        if not path.is_file():
            raise ArtifactNotFoundError(str(path))
        return str(path)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)
