import json
import tempfile
import unittest
from pathlib import Path

from appgallery.config import RuntimeMode
from appgallery.gateway import GatewayRegistry, ResourceGateway, StorageTier
from appgallery.local_store import LocalFileStore
from appgallery.resources import APPS, FEATURED_IDS, FEATURED_SETS
from appgallery.tests.doubles import FlakyBlobStore, StepClock


class LocalGatewayTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"
        self.store = LocalFileStore(self.data_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def _gateway(self, resource=APPS):
        return ResourceGateway(resource, RuntimeMode.LOCAL, local_store=self.store)

    def test_read_initializes_empty_file(self):
        gateway = self._gateway(FEATURED_SETS)
        self.assertEqual(gateway.read(), {"featured": [], "events": []})
        self.assertEqual(gateway.read(), {"featured": [], "events": []})
        saved = json.loads((self.data_dir / "featured-apps.json").read_text())
        self.assertEqual(saved, {"featured": [], "events": []})

    def test_write_then_read(self):
        gateway = self._gateway()
        result = gateway.write([{"id": "a", "name": "Alpha"}])
        self.assertIs(result.tier, StorageTier.LOCAL_FILE)
        self.assertIsNone(result.warning)
        self.assertEqual(gateway.read(), [{"id": "a", "name": "Alpha"}])

    def test_corrupt_file_is_not_overwritten_by_read(self):
        self.data_dir.mkdir(parents=True)
        path = self.data_dir / "apps.json"
        path.write_text("{not json")
        self.assertEqual(self._gateway().read(), [])
        self.assertEqual(path.read_text(), "{not json")

    def test_unwritable_directory_degrades_to_memory(self):
        self.data_dir.parent.mkdir(parents=True, exist_ok=True)
        self.data_dir.write_text("a file where the directory should be")
        gateway = self._gateway()

        result = gateway.write([{"id": "a"}])
        self.assertIs(result.tier, StorageTier.MEMORY_CACHE)
        self.assertEqual(result.warning, "local file save failed")
        self.assertEqual(gateway.read(), [{"id": "a"}])

    def test_union_merge_and_replace(self):
        gateway = self._gateway(FEATURED_IDS)
        gateway.write(["a"])
        self.assertEqual(gateway.write(["b", "a"]).data, ["a", "b"])
        gateway.replace(["b"])
        self.assertEqual(gateway.read(), ["b"])


class HostedGatewayTests(unittest.TestCase):
    def setUp(self):
        self.clock = StepClock()
        self.blobs = FlakyBlobStore(clock=self.clock)

    def _gateway(self, resource=APPS):
        return ResourceGateway(resource, RuntimeMode.HOSTED, blob_store=self.blobs)

    def test_fewer_failures_than_budget_still_reach_blob(self):
        self.blobs.failing_puts = 2
        result = self._gateway().write([{"id": "a"}])
        self.assertIs(result.tier, StorageTier.BLOB_STORE)
        self.assertEqual(len(self.blobs.put_calls), 3)
        self.assertIn("apps.json", self.blobs.stored_objects)

    def test_exhausted_budget_falls_back_to_memory_without_fourth_attempt(self):
        self.blobs.failing_puts = 10
        gateway = self._gateway()
        result = gateway.write([{"id": "a"}])
        self.assertIs(result.tier, StorageTier.MEMORY_CACHE)
        self.assertFalse(result.durable)
        self.assertEqual(result.warning, "blob save failed after 3 attempts")
        self.assertEqual(len(self.blobs.put_calls), 3)
        self.assertEqual(gateway.read(), [{"id": "a"}])

    def test_latest_upload_wins(self):
        self.blobs.put("apps.json", b'[{"id": "old"}]', content_type="application/json")
        self.clock.advance(60)
        self.blobs.put(
            "apps.json.copy", b'[{"id": "new"}]', content_type="application/json"
        )
        self.assertEqual(self._gateway().read(), [{"id": "new"}])

        self.clock.advance(60)
        self.blobs.put("apps.json", b'[{"id": "newest"}]', content_type="application/json")
        self.assertEqual(self._gateway().read(), [{"id": "newest"}])

    def test_failed_list_serves_cache_then_empty(self):
        gateway = self._gateway()
        gateway.write([{"id": "a"}])
        self.blobs.fail_lists = True
        self.assertEqual(gateway.read(), [{"id": "a"}])
        self.assertEqual(self._gateway().read(), [])

    def test_union_merge_reads_blob_before_writing(self):
        self._gateway(FEATURED_SETS).write({"featured": ["a"], "events": []})
        merged = self._gateway(FEATURED_SETS).write({"featured": [], "events": ["b"]})
        self.assertEqual(merged.data, {"featured": ["a"], "events": ["b"]})

    def test_hosted_mode_requires_blob_store(self):
        with self.assertRaises(ValueError):
            ResourceGateway(APPS, RuntimeMode.HOSTED)


class GatewayRegistryTests(unittest.TestCase):
    def test_memory_only_write_is_lost_on_cold_start(self):
        blobs = FlakyBlobStore(failing_puts=100)
        registry = GatewayRegistry(RuntimeMode.HOSTED, blob_store=blobs)
        result = registry.get(APPS).write([{"id": "a"}])
        self.assertIs(result.tier, StorageTier.MEMORY_CACHE)
        self.assertEqual(registry.get("apps.json").read(), [{"id": "a"}])

        cold = GatewayRegistry(RuntimeMode.HOSTED, blob_store=blobs)
        self.assertEqual(cold.get(APPS).read(), [])

    def test_one_gateway_per_resource(self):
        registry = GatewayRegistry(RuntimeMode.HOSTED, blob_store=FlakyBlobStore())
        self.assertIs(registry.get(APPS), registry.get("apps.json"))
        self.assertIsNot(registry.get(APPS), registry.get(FEATURED_IDS))


if __name__ == "__main__":
    unittest.main()
