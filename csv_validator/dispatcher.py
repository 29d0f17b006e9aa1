from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures

from .errors import DispatchError
from .worker import TransformWorker

logger = logging.getLogger(__name__)


class Dispatcher:
    """Fire-and-forget launcher for worker runs on a thread pool."""

    def __init__(self, worker: TransformWorker, max_workers: int | None = None) -> None:
        self.worker = worker
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers) if max_workers else None,
            thread_name_prefix="csv-worker",
        )
        self._futures_lock = threading.RLock()
        self._job_futures: dict[str, Future] = {}

    def dispatch(self, job_id: str) -> None:
        with self._futures_lock:
            existing = self._job_futures.get(job_id)
            if existing and not existing.done():
                logger.debug("Job %s already in flight", job_id)
                return
            try:
                future = self._executor.submit(self.worker.run, job_id)
            except RuntimeError as exc:
                # Pool already shut down.
                logger.error("Cannot schedule job %s: %s", job_id, exc)
                self.worker.registry.mark_failed(job_id, f"failed to schedule job: {exc}")
                raise DispatchError(job_id, str(exc)) from exc
            self._job_futures[job_id] = future
        future.add_done_callback(lambda f, job_id=job_id: self._forget(job_id, f))

    def in_flight(self) -> int:
        with self._futures_lock:
            return sum(1 for f in self._job_futures.values() if not f.done())

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no run is in flight; False if ``timeout`` expires first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._futures_lock:
                pending = [f for f in self._job_futures.values() if not f.done()]
            if not pending:
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            wait_futures(pending, timeout=remaining)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def _forget(self, job_id: str, future: Future) -> None:
        with self._futures_lock:
            if self._job_futures.get(job_id) is future:
                self._job_futures.pop(job_id, None)
