from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from csv_validator.dispatcher import Dispatcher
from csv_validator.errors import DispatchError
from csv_validator.job_manager import JobRegistry
from csv_validator.models import JobStatus
from csv_validator.storage import ArtifactStore
from csv_validator.worker import TransformWorker


class BlockingWorker:
    def __init__(self) -> None:
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def run(self, job_id: str) -> None:
        with self._lock:
            self.calls.append(job_id)
        self.started.set()
        self.release.wait(5)


class DispatcherTest(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        root = Path(self.temp_dir.name)
        self.registry = JobRegistry()
        self.store = ArtifactStore(root / "uploads", root / "downloads")
        self.dispatcher = Dispatcher(TransformWorker(self.registry, self.store), max_workers=4)

    def tearDown(self) -> None:
        self.dispatcher.shutdown()
        self.temp_dir.cleanup()

    def test_dispatched_jobs_reach_terminal_state(self) -> None:
        job_ids = []
        for index in range(10):
            job = self.registry.create(f"file{index}.csv")
            content = b"name,email\nA,a@x.com\n" if index % 2 else b""
            self.registry.set_input(job.id, self.store.save(content, job.id, job.label))
            job_ids.append(job.id)

        for job_id in job_ids:
            self.assertIsNone(self.dispatcher.dispatch(job_id))

        self.assertTrue(self.dispatcher.wait_idle(timeout=10))
        self.assertEqual(self.dispatcher.in_flight(), 0)
        for index, job_id in enumerate(job_ids):
            job = self.registry.get(job_id)
            assert job is not None
            expected = JobStatus.COMPLETED if index % 2 else JobStatus.FAILED
            self.assertEqual(job.status, expected)

    def test_dispatch_returns_before_run_finishes(self) -> None:
        worker = BlockingWorker()
        dispatcher = Dispatcher(worker, max_workers=1)  # type: ignore[arg-type]
        try:
            dispatcher.dispatch("job-1")
            self.assertTrue(worker.started.wait(5))
            self.assertEqual(dispatcher.in_flight(), 1)
            self.assertFalse(dispatcher.wait_idle(timeout=0.05))

            worker.release.set()
            self.assertTrue(dispatcher.wait_idle(timeout=5))
            self.assertEqual(dispatcher.in_flight(), 0)
        finally:
            worker.release.set()
            dispatcher.shutdown()

    def test_job_in_flight_is_not_submitted_twice(self) -> None:
        worker = BlockingWorker()
        dispatcher = Dispatcher(worker, max_workers=2)  # type: ignore[arg-type]
        try:
            dispatcher.dispatch("job-1")
            self.assertTrue(worker.started.wait(5))
            dispatcher.dispatch("job-1")

            worker.release.set()
            self.assertTrue(dispatcher.wait_idle(timeout=5))
            self.assertEqual(worker.calls, ["job-1"])
        finally:
            worker.release.set()
            dispatcher.shutdown()

    def test_dispatch_after_shutdown_fails_job(self) -> None:
        job = self.registry.create("late.csv")
        self.dispatcher.shutdown()

        with self.assertRaises(DispatchError):
            self.dispatcher.dispatch(job.id)

        failed = self.registry.get(job.id)
        assert failed is not None
        self.assertEqual(failed.status, JobStatus.FAILED)
        self.assertIn("failed to schedule job", failed.error_detail or "")
        self.assertEqual(self.dispatcher.in_flight(), 0)

    def test_wait_idle_without_work(self) -> None:
        self.assertTrue(self.dispatcher.wait_idle(timeout=0))


if __name__ == "__main__":
    unittest.main()
