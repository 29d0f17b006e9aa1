from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from .errors import InvalidTransitionError
from .models import Job, JobStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRegistry:
    """In-memory job table shared by the HTTP handlers and the workers.

    Every mutation and read happens under one lock, and callers only ever get
    copies of the stored records. Lookups of unknown ids return ``None`` or
    ``False`` instead of raising.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._jobs: dict[str, Job] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, label: str = "") -> Job:
        with self._lock:
            job_id = str(uuid4())
            while job_id in self._jobs:
                job_id = str(uuid4())
            record = Job(id=job_id, created_at=_utcnow(), label=label)
            self._jobs[job_id] = record
            return replace(record)

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            record = self._jobs.get(job_id)
            return replace(record) if record else None

    def list_jobs(self, limit: int | None = None) -> list[Job]:
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda x: x.created_at, reverse=True)
            if limit is not None:
                jobs = jobs[: max(1, limit)]
            return [replace(record) for record in jobs]

    def set_input(self, job_id: str, location: str) -> bool:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            record.input_location = location
            return True

    def set_status(self, job_id: str, status: str) -> bool:
        if status not in JobStatus.ALL:
            raise InvalidTransitionError(job_id, "?", status)
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            if record.is_terminal or JobStatus.rank(status) < JobStatus.rank(record.status):
                raise InvalidTransitionError(job_id, record.status, status)
            if status == JobStatus.COMPLETED and not record.output_location:
                # Completed records always point at their output.
                raise InvalidTransitionError(job_id, record.status, status)
            record.status = status
            if status == JobStatus.FAILED:
                record.error_detail = record.error_detail or "job failed"
                record.output_location = None
            if status in JobStatus.TERMINAL:
                record.completed_at = _utcnow()
            return True

    def set_output(self, job_id: str, location: str) -> bool:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            record.output_location = location
            return True

    def complete(self, job_id: str, location: str) -> bool:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            if record.is_terminal:
                raise InvalidTransitionError(job_id, record.status, JobStatus.COMPLETED)
            record.output_location = location
            record.status = JobStatus.COMPLETED
            record.completed_at = _utcnow()
            return True

    def mark_failed(self, job_id: str, detail: str) -> bool:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            if record.is_terminal:
                # First terminal outcome wins.
                logger.warning(
                    "Job %s already %s, ignoring failure: %s", job_id, record.status, detail
                )
                return True
            record.status = JobStatus.FAILED
            record.error_detail = detail or "unknown error"
            record.output_location = None
            record.completed_at = _utcnow()
            return True

    def sweep(self, max_age: timedelta) -> int:
        removed = 0
        cutoff = _utcnow() - max_age
        with self._lock:
            for job_id, record in list(self._jobs.items()):
                if record.created_at < cutoff:
                    self._jobs.pop(job_id, None)
                    removed += 1
        if removed:
            logger.info("Swept %d jobs older than %s", removed, max_age)
        return removed
