from __future__ import annotations

import logging
import time
from pathlib import Path

from .errors import EmptyInputError, InvalidTransitionError, JobNotFoundError
from .job_manager import JobRegistry
from .models import JobStatus
from .storage import ArtifactStore
from .transform import (
    EMAIL_COLUMN,
    FieldRule,
    is_valid_email,
    parse_records,
    serialize_records,
    transform_records,
)

logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "processed_"


class TransformWorker:
    """Runs one job end to end and reports the outcome to the registry."""

    def __init__(
        self,
        registry: JobRegistry,
        store: ArtifactStore,
        rule: FieldRule = is_valid_email,
        column: str = EMAIL_COLUMN,
        output_prefix: str = OUTPUT_PREFIX,
    ) -> None:
        self.registry = registry
        self.store = store
        self.rule = rule
        self.column = column
        self.output_prefix = output_prefix

    def output_name(self, input_location: str) -> str:
        return f"{self.output_prefix}{Path(input_location).name}"

    def run(self, job_id: str) -> None:
        """Process ``job_id``; never raises."""
        try:
            if not self.registry.set_status(job_id, JobStatus.PROCESSING):
                logger.warning("Job %s disappeared before processing started", job_id)
                return
        except InvalidTransitionError as exc:
            logger.warning("Not starting job %s: %s", job_id, exc)
            return

        started = time.monotonic()
        try:
            location = self.process(job_id)
        except Exception as exc:
            logger.exception("Failed to process file for job %s", job_id)
            self.registry.mark_failed(job_id, str(exc) or type(exc).__name__)
            return

        logger.info(
            "Successfully processed file for job %s -> %s in %.3fs",
            job_id,
            location,
            time.monotonic() - started,
        )

    def process(self, job_id: str) -> str:
        """Transform the job's input and mark it completed; raises on failure."""
        job = self.registry.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if not job.input_location:
            raise ValueError("job has no input location")

        try:
            data = self.store.read(job.input_location)
        except OSError as exc:
            raise OSError(f"failed to open original file: {exc}") from exc

        records = parse_records(data)
        if not records:
            raise EmptyInputError()

        processed = transform_records(records, rule=self.rule, column=self.column)

        try:
            location = self.store.save_output(
                serialize_records(processed), self.output_name(job.input_location)
            )
        except OSError as exc:
            raise OSError(f"failed to write processed CSV: {exc}") from exc

        try:
            completed = self.registry.complete(job_id, location)
        except InvalidTransitionError:
            self._discard(job_id, location)
            raise
        if not completed:
            self._discard(job_id, location)
            raise JobNotFoundError(job_id)
        return location

    def _discard(self, job_id: str, location: str) -> None:
        """Remove an output file the registry never recorded for ``job_id``."""
        job = self.registry.get(job_id)
        if job is not None and job.output_location == location:
            return
        try:
            self.store.delete(location)
        except OSError as exc:
            logger.warning("Could not remove orphaned output %s: %s", location, exc)
