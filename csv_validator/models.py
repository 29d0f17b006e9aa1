from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


class JobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, PROCESSING, COMPLETED, FAILED)
    TERMINAL = frozenset({COMPLETED, FAILED})

    @classmethod
    def rank(cls, status: str) -> int:
        # completed and failed share the last rank
        return min(cls.ALL.index(status), 2)


@dataclass
class Job:
    id: str
    created_at: datetime
    status: str = JobStatus.PENDING  # pending | processing | completed | failed
    label: str = ""
    input_location: str | None = None
    output_location: str | None = None
    error_detail: str | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in JobStatus.TERMINAL

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "status": self.status,
            "label": self.label,
            "input_location": self.input_location,
            "created_at": self.created_at.isoformat(),
        }
        if self.output_location:
            payload["output_location"] = self.output_location
        if self.error_detail:
            payload["error_detail"] = self.error_detail
        if self.completed_at is not None:
            payload["completed_at"] = self.completed_at.isoformat()
        return payload


@dataclass(frozen=True)
class UploadInfo:
    filename: str
    size: int
    mime_type: str = "text/csv"
