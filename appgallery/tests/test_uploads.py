import tempfile
import unittest
from pathlib import Path

from appgallery.config import RuntimeMode
from appgallery.tests.doubles import FlakyBlobStore
from appgallery.uploads import AssetLocation, AssetStore, DeleteOutcome


class LocalAssetStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.uploads_dir = Path(self._tmp.name) / "uploads"
        self.blobs = FlakyBlobStore()
        self.assets = AssetStore(
            RuntimeMode.LOCAL, uploads_dir=self.uploads_dir, blob_store=self.blobs
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_save_and_delete_local_file(self):
        uploaded = self.assets.save(b"icon", "icon.png", prefix="icon")
        self.assertIs(uploaded.location, AssetLocation.LOCAL)
        self.assertTrue(uploaded.url.startswith("/uploads/icon_"))
        self.assertEqual((self.uploads_dir / uploaded.file_name).read_bytes(), b"icon")

        self.assertIs(self.assets.delete(uploaded.url), DeleteOutcome.DELETED)
        self.assertIs(self.assets.delete(uploaded.url), DeleteOutcome.NOT_FOUND)

    def test_delete_ignores_directory_components(self):
        outside = Path(self._tmp.name) / "secret.txt"
        outside.write_text("keep")
        outcome = self.assets.delete("/uploads/../secret.txt")
        self.assertIs(outcome, DeleteOutcome.NOT_FOUND)
        self.assertTrue(outside.exists())

    def test_save_refuses_names_outside_uploads_dir(self):
        with self.assertRaises(ValueError):
            self.assets._save_local(b"x", "../x.png")
        self.assertFalse((Path(self._tmp.name) / "x.png").exists())

    def test_external_urls_are_left_alone(self):
        self.assertIs(
            self.assets.delete("https://cdn.elsewhere.test/a.png"), DeleteOutcome.EXTERNAL
        )

    def test_forced_blob_upload_in_local_mode(self):
        uploaded = self.assets.save(b"x", "a.jpg", force_blob=True)
        self.assertIs(uploaded.location, AssetLocation.BLOB)
        self.assertIs(self.assets.classify(uploaded.url), AssetLocation.BLOB)


class HostedAssetStoreTests(unittest.TestCase):
    def setUp(self):
        self.blobs = FlakyBlobStore()
        self.assets = AssetStore(RuntimeMode.HOSTED, uploads_dir="unused", blob_store=self.blobs)

    def test_save_as_uses_given_pathname(self):
        uploaded = self.assets.save_as(b"img", "events/item-1.png")
        self.assertIn("events/item-1.png", self.blobs.stored_objects)
        self.assertEqual(self.blobs.stored_objects["events/item-1.png"].content_type, "image/png")
        self.assertIs(self.assets.delete(uploaded.url), DeleteOutcome.DELETED)
        self.assertEqual(self.blobs.stored_objects, {})

    def test_failed_blob_delete(self):
        uploaded = self.assets.save(b"img", "a.png")
        self.blobs.fail_deletes = True
        self.assertIs(self.assets.delete(uploaded.url), DeleteOutcome.FAILED)


if __name__ == "__main__":
    unittest.main()
