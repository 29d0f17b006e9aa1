from __future__ import annotations


class CsvValidatorError(Exception):
    """Base class for service errors."""


class JobNotFoundError(CsvValidatorError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"job not found: {job_id}")
        self.job_id = job_id


class InvalidTransitionError(CsvValidatorError):
    def __init__(self, job_id: str, current: str, requested: str) -> None:
        super().__init__(f"job {job_id}: cannot move from {current!r} to {requested!r}")
        self.job_id = job_id
        self.current = current
        self.requested = requested


class StorageInitError(CsvValidatorError):
    pass


class ArtifactNotFoundError(CsvValidatorError, FileNotFoundError):
    def __init__(self, location: str) -> None:
        super().__init__(f"artifact not found: {location}")
        self.location = location


class EmptyInputError(CsvValidatorError):
    def __init__(self, message: str = "CSV file is empty") -> None:
        super().__init__(message)


class MalformedInputError(CsvValidatorError):
    pass


class UploadValidationError(CsvValidatorError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class DispatchError(CsvValidatorError):
    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(f"failed to schedule job {job_id}: {reason}")
        self.job_id = job_id
