import unittest

from appgallery.catalog import AppCatalog, FeaturedSets, RecordNotFound, newest_first
from appgallery.config import RuntimeMode
from appgallery.gateway import GatewayRegistry
from appgallery.storage import InMemoryBlobStore
from appgallery.tests.doubles import FlakyBlobStore


def _registry() -> GatewayRegistry:
    return GatewayRegistry(RuntimeMode.HOSTED, blob_store=InMemoryBlobStore())


class AppCatalogTests(unittest.TestCase):
    def setUp(self):
        self.registry = _registry()
        self.catalog = AppCatalog(self.registry)
        self.catalog.save_apps(
            [
                {"id": "a", "uploadDate": "2024-01-01T00:00:00.000Z"},
                {"id": "b", "uploadDate": "2024-03-01T00:00:00.000Z"},
                {"id": "c", "uploadDate": "2024-02-01T00:00:00.000Z"},
            ]
        )

    def test_membership_is_joined_at_read_time(self):
        self.catalog.add_ids("featured", ["a"])
        self.catalog.add_ids("events", ["b"])
        apps = {app["id"]: app for app in self.catalog.list_with_flags()}
        self.assertTrue(apps["a"]["isFeatured"])
        self.assertFalse(apps["a"]["isEvent"])
        self.assertTrue(apps["b"]["isEvent"])
        self.assertNotIn("isFeatured", self.catalog.list_apps()[0])

    def test_filters(self):
        self.catalog.add_ids("featured", ["a"])
        self.catalog.add_ids("events", ["b"])
        ids = lambda f: [app["id"] for app in self.catalog.list_with_flags(f)]
        self.assertEqual(ids("latest"), ["b", "c", "a"])
        self.assertEqual(ids("featured"), ["a"])
        self.assertEqual(ids("events"), ["b"])
        self.assertEqual(ids("normal"), ["c"])

    def test_add_then_remove_featured_id(self):
        self.catalog.add_ids("featured", ["a", "c"])
        self.catalog.remove_id("featured", "a")
        self.assertEqual(self.catalog.read_ids("featured"), ["c"])
        with self.assertRaises(RecordNotFound):
            self.catalog.remove_id("featured", "a")

    def test_toggle_remove_of_absent_id_is_a_noop(self):
        result = self.catalog.toggle("events", "zzz", "remove")
        self.assertEqual(result.data, [])

    def test_saving_strips_derived_flags(self):
        self.catalog.save_apps([{"id": "a", "isFeatured": True, "isEvent": False}])
        self.assertEqual(self.catalog.list_apps(), [{"id": "a"}])

    def test_update_and_forget(self):
        updated, _ = self.catalog.update_app("a", {"name": "Alpha", "isEvent": True})
        self.assertEqual(
            updated, {"id": "a", "uploadDate": "2024-01-01T00:00:00.000Z", "name": "Alpha"}
        )
        with self.assertRaises(RecordNotFound):
            self.catalog.update_app("missing", {})

        self.catalog.add_ids("featured", ["a"])
        self.assertTrue(self.catalog.forget_app("a"))
        self.assertEqual(self.catalog.read_ids("featured"), [])
        self.assertFalse(self.catalog.forget_app("a"))

    def test_updating_one_app_leaves_siblings_untouched(self):
        before = {app["id"]: app for app in self.catalog.list_apps()}
        self.catalog.update_app("b", {"views": 10})
        after = {app["id"]: app for app in self.catalog.list_apps()}
        self.assertEqual([app["id"] for app in self.catalog.list_apps()], ["a", "b", "c"])
        self.assertEqual(after["a"], before["a"])
        self.assertEqual(after["c"], before["c"])
        self.assertEqual(after["b"]["views"], 10)

    def test_gallery_subset_replacement_validates_ids(self):
        valid, _ = self.catalog.replace_gallery_apps(
            [{"id": "20001"}, {"id": "5"}, {"id": "1700000000000_abcdefghijk"}]
        )
        self.assertEqual([app["id"] for app in valid], ["20001", "1700000000000_abcdefghijk"])
        self.assertEqual(
            sorted(app["id"] for app in self.catalog.gallery_apps()),
            ["1700000000000_abcdefghijk", "20001"],
        )
        self.assertEqual(len(self.catalog.list_apps()), 5)


class FeaturedSetsTests(unittest.TestCase):
    def test_toggle_add_and_remove(self):
        sets = FeaturedSets(_registry())
        sets.toggle("featured", "a", "add")
        sets.toggle("events", "a", "add")
        result = sets.toggle("featured", "a", "remove")
        self.assertEqual(result.data, {"featured": [], "events": ["a"]})
        self.assertEqual(sets.read(), {"featured": [], "events": ["a"]})

    def test_save_merges(self):
        sets = FeaturedSets(_registry())
        sets.save({"featured": ["a"], "events": []})
        result = sets.save({"featured": ["b"], "events": ["c"]})
        self.assertEqual(result.data, {"featured": ["a", "b"], "events": ["c"]})


class UnreadableBlobTests(unittest.TestCase):
    """Removing an absent id must not persist whatever a failed read returned."""

    def setUp(self):
        self.blobs = FlakyBlobStore()
        healthy = GatewayRegistry(RuntimeMode.HOSTED, blob_store=self.blobs)
        AppCatalog(healthy).add_ids("featured", ["a", "b"])
        FeaturedSets(healthy).save({"featured": ["a"], "events": ["e"]})
        self.puts_before = len(self.blobs.put_calls)
        self.blobs.fail_lists = True
        self.cold = GatewayRegistry(RuntimeMode.HOSTED, blob_store=self.blobs)

    def _fresh(self) -> GatewayRegistry:
        self.blobs.fail_lists = False
        return GatewayRegistry(RuntimeMode.HOSTED, blob_store=self.blobs)

    def test_catalog_toggle_remove_of_absent_id_writes_nothing(self):
        result = AppCatalog(self.cold).toggle("featured", "zzz", "remove")
        self.assertEqual(result.data, [])
        self.assertEqual(len(self.blobs.put_calls), self.puts_before)
        self.assertEqual(AppCatalog(self._fresh()).read_ids("featured"), ["a", "b"])

    def test_featured_sets_toggle_remove_of_absent_id_writes_nothing(self):
        FeaturedSets(self.cold).toggle("events", "zzz", "remove")
        self.assertEqual(len(self.blobs.put_calls), self.puts_before)
        self.assertEqual(
            FeaturedSets(self._fresh()).read(), {"featured": ["a"], "events": ["e"]}
        )


class OrderingTests(unittest.TestCase):
    def test_missing_dates_sort_last(self):
        records = [{"id": "x"}, {"id": "y", "publishDate": "2024-05-01T00:00:00Z"}]
        self.assertEqual([r["id"] for r in newest_first(records, "publishDate")], ["y", "x"])


if __name__ == "__main__":
    unittest.main()
