from __future__ import annotations

from pathlib import Path

from .errors import UploadValidationError
from .models import UploadInfo

_UNSAFE_CHARS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|")
_JOB_ID_GROUPS = (8, 4, 4, 4, 12)


def sanitize_filename(name: str, default: str = "file.csv") -> str:
    clean = (name or "").replace("..", "_")
    for char in _UNSAFE_CHARS:
        clean = clean.replace(char, "_")
    clean = clean.replace("\n", "_").replace("\r", "_")
    trimmed = clean.strip()
    if not trimmed.strip("_"):
        return default
    return clean


def is_valid_job_id(value: str) -> bool:
    if len(value or "") != 36:
        return False
    parts = value.split("-")
    if len(parts) != len(_JOB_ID_GROUPS):
        return False
    return all(len(part) == size for part, size in zip(parts, _JOB_ID_GROUPS))


def is_text_content(data: bytes) -> bool:
    """Heuristic check on the first bytes of an upload."""
    if not data:
        return False
    if b"\x00" in data:
        return False
    printable = sum(1 for b in data if 32 <= b <= 126 or b in (9, 10, 13))
    return printable / len(data) >= 0.95


def validate_upload(filename: str | None, data: bytes, max_size: int) -> UploadInfo:
    if not filename:
        raise UploadValidationError("No file provided or invalid form data")
    if Path(filename).suffix.lower() != ".csv":
        raise UploadValidationError("invalid file format. Only CSV files are allowed")
    if not data:
        raise UploadValidationError("file is empty")
    if len(data) > max_size:
        raise UploadValidationError(
            f"File size ({len(data)} bytes) exceeds maximum allowed size ({max_size} bytes)",
            status_code=413,
        )
    if not is_text_content(data[:512]):
        raise UploadValidationError("file does not appear to be a valid text/CSV file")
    return UploadInfo(filename=filename, size=len(data))
