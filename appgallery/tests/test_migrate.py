import json
import tempfile
import unittest
from pathlib import Path

from appgallery.config import RuntimeMode
from appgallery.gateway import GatewayRegistry, StorageTier
from appgallery.local_store import LocalFileStore
from appgallery.migrate import migrate_to_blob, split_featured
from appgallery.tests.doubles import FlakyBlobStore


class MigrateTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        self.store = LocalFileStore(self.data_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, name, value):
        (self.data_dir / name).write_text(json.dumps(value))

    def test_split_featured(self):
        self._write("featured-apps.json", {"featured": ["a", "b"], "events": ["c"]})
        self.assertTrue(split_featured(self.store))
        self.assertEqual(json.loads((self.data_dir / "featured.json").read_text()), ["a", "b"])
        self.assertEqual(json.loads((self.data_dir / "events.json").read_text()), ["c"])
        self.assertFalse((self.data_dir / "featured-apps.json").exists())
        self.assertTrue((self.data_dir / "featured-apps.json.backup").exists())

        self.assertFalse(split_featured(self.store))

    def test_to_blob_copies_existing_files(self):
        self._write("apps.json", [{"id": "a"}])
        self._write("featured.json", ["a"])
        blobs = FlakyBlobStore()
        tiers = migrate_to_blob(
            self.store, GatewayRegistry(RuntimeMode.HOSTED, blob_store=blobs)
        )
        self.assertEqual(
            tiers, {"apps.json": StorageTier.BLOB_STORE, "featured.json": StorageTier.BLOB_STORE}
        )
        self.assertEqual(json.loads(blobs.stored_objects["apps.json"].body), [{"id": "a"}])

    def test_to_blob_reports_memory_only_resources(self):
        self._write("events.json", ["x"])
        blobs = FlakyBlobStore(failing_puts=3)
        tiers = migrate_to_blob(
            self.store, GatewayRegistry(RuntimeMode.HOSTED, blob_store=blobs)
        )
        self.assertEqual(tiers, {"events.json": StorageTier.MEMORY_CACHE})

    def test_to_blob_needs_hosted_registry(self):
        registry = GatewayRegistry(RuntimeMode.LOCAL, local_store=self.store)
        with self.assertRaises(ValueError):
            migrate_to_blob(self.store, registry)


if __name__ == "__main__":
    unittest.main()
