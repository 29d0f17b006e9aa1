from __future__ import annotations

import logging
import threading

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from . import __version__
from .config import Settings, configure_logging
from .dispatcher import Dispatcher
from .errors import ArtifactNotFoundError, DispatchError, UploadValidationError
from .job_manager import JobRegistry
from .models import JobStatus
from .storage import ArtifactStore
from .validation import is_valid_job_id, sanitize_filename, validate_upload
from .worker import OUTPUT_PREFIX, TransformWorker

logger = logging.getLogger(__name__)


class CleanupThread:
    """Periodically sweeps old jobs out of the registry."""

    def __init__(self, registry: JobRegistry, settings: Settings) -> None:
        self.registry = registry
        self.settings = settings
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _loop(self) -> None:
        while not self._stop.wait(self.settings.cleanup_interval_seconds):
            try:
                self.registry.sweep(self.settings.job_max_age)
            except Exception:
                logger.exception("Job sweep failed")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, name="job-sweeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    registry = JobRegistry()
    store = ArtifactStore(settings.upload_dir, settings.download_dir)
    worker = TransformWorker(registry, store)
    dispatcher = Dispatcher(worker, max_workers=settings.max_workers)
    cleanup = CleanupThread(registry, settings)

    app = FastAPI(title="CSV Validator", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.cleanup = cleanup

    @app.on_event("startup")
    def on_startup() -> None:
        cleanup.start()
        logger.info(
            "Storing uploads in %s and output in %s", store.upload_dir, store.download_dir
        )

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        cleanup.stop()
        dispatcher.shutdown(wait=False)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/jobs")
    def list_jobs(limit: int = 50) -> JSONResponse:
        jobs = [item.to_dict() for item in registry.list_jobs(limit=limit)]
        return JSONResponse({"items": jobs})

    @app.get("/api/jobs/{job_id}")
    def get_job(job_id: str) -> JSONResponse:
        record = registry.get(job_id)
        if not record:
            raise HTTPException(status_code=404, detail="Job not found")
        return JSONResponse(record.to_dict())

    @app.post("/api/upload")
    async def upload_file(file: UploadFile = File(...)) -> JSONResponse:
        data = await file.read()
        logger.info("Processing file: %s (size: %d bytes)", file.filename, len(data))

        try:
            info = validate_upload(file.filename, data, settings.max_file_size)
        except UploadValidationError as exc:
            logger.error("File validation failed: %s", exc)
            raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

        filename = sanitize_filename(info.filename)
        record = registry.create(filename)
        logger.info("Created job %s for file %s", record.id, filename)

        try:
            saved = store.save(data, record.id, filename)
        except OSError as exc:
            logger.error("Failed to save file for job %s: %s", record.id, exc)
            registry.mark_failed(record.id, f"Failed to save file: {exc}")
            raise HTTPException(status_code=500, detail="Failed to save uploaded file") from exc

        registry.set_input(record.id, saved)
        try:
            dispatcher.dispatch(record.id)
        except DispatchError as exc:
            raise HTTPException(status_code=503, detail="Service is shutting down") from exc
        logger.info("Successfully initiated processing for job %s", record.id)
        return JSONResponse({"id": record.id})

    @app.get("/api/download/{job_id}")
    def download_file(job_id: str):
        if not is_valid_job_id(job_id):
            raise HTTPException(status_code=400, detail="Invalid job ID format")

        record = registry.get(job_id)
        if not record:
            raise HTTPException(status_code=400, detail="Invalid job ID")

        if record.status in (JobStatus.PENDING, JobStatus.PROCESSING):
            raise HTTPException(status_code=423, detail="Job is still in progress")
        if record.status == JobStatus.FAILED:
            raise HTTPException(
                status_code=500, detail=f"Job processing failed: {record.error_detail}"
            )
        if not record.output_location:
            raise HTTPException(status_code=500, detail="Processed file not found")

        try:
            path = store.resolve(record.output_location)
        except ArtifactNotFoundError as exc:
            logger.error("Processed file not found for job %s: %s", job_id, exc)
            raise HTTPException(status_code=404, detail="Processed file not found") from exc

        download_name = f"{OUTPUT_PREFIX}{sanitize_filename(record.label)}"
        logger.info("Serving file %s for job %s", path, job_id)
        return FileResponse(path=path, filename=download_name, media_type="text/csv")

    return app
