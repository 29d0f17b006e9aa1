from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from csv_validator.errors import ArtifactNotFoundError, StorageInitError
from csv_validator.storage import ArtifactStore


class ArtifactStoreTest(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        root = Path(self.temp_dir.name)
        self.upload_dir = root / "uploads"
        self.download_dir = root / "downloads"
        self.store = ArtifactStore(self.upload_dir, self.download_dir)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_directories_created_on_init(self) -> None:
        self.assertTrue(self.upload_dir.is_dir())
        self.assertTrue(self.download_dir.is_dir())

    def test_unwritable_backing_dir_is_fatal(self) -> None:
        blocker = Path(self.temp_dir.name) / "blocker"
        blocker.write_text("not a directory")

        with self.assertRaises(StorageInitError):
            ArtifactStore(blocker / "uploads", blocker / "downloads")

    def test_save_embeds_job_id(self) -> None:
        location = self.store.save(b"name,email\nJohn,john@test.com", "test-job-123", "test.csv")

        path = Path(location)
        self.assertEqual(path.parent, self.upload_dir.resolve())
        self.assertTrue(path.name.startswith("test-job-123_"))
        self.assertTrue(path.name.endswith("_test.csv"))
        self.assertIn(b"john@test.com", self.store.read(location))

    def test_save_sanitizes_filename(self) -> None:
        location = self.store.save(b"a\n", "job", "../../etc/passwd")

        self.assertEqual(Path(location).parent, self.upload_dir.resolve())
        self.assertNotIn("/", Path(location).name)

    def test_save_leaves_no_temp_files(self) -> None:
        self.store.save(b"a\n", "job", "a.csv")
        self.store.save_output(b"a,has_email\n", "processed_a.csv")

        leftovers = [p.name for p in self.upload_dir.iterdir() if p.name.endswith(".tmp")]
        leftovers += [p.name for p in self.download_dir.iterdir() if p.name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_save_output_and_resolve(self) -> None:
        location = self.store.save_output(b"name,has_email\n", "processed_people.csv")

        self.assertEqual(Path(location).parent, self.download_dir.resolve())
        self.assertEqual(self.store.resolve(location), location)
        self.assertEqual(self.store.resolve("processed_people.csv"), location)
        with self.assertRaises(ArtifactNotFoundError):
            self.store.resolve("missing.csv")

    def test_read_missing_location(self) -> None:
        missing = str(self.upload_dir / "nope.csv")

        with self.assertRaises(ArtifactNotFoundError):
            self.store.read(missing)
        with self.assertRaises(FileNotFoundError):
            self.store.read(missing)

    def test_exists(self) -> None:
        location = self.store.save(b"x\n", "job", "x.csv")

        self.assertTrue(self.store.exists(location))
        self.assertFalse(self.store.exists(str(self.upload_dir / "nope.csv")))
        self.assertFalse(self.store.exists(""))

    def test_delete(self) -> None:
        location = self.store.save(b"temp", "job", "delete-me.csv")

        self.store.delete(location)
        self.assertFalse(Path(location).exists())

        with self.assertRaises(ArtifactNotFoundError):
            self.store.delete(location)


if __name__ == "__main__":
    unittest.main()
