"""
Integration tests for TranslationSession.

A session is wired to a file-backed snapshot store and an in-memory base
catalog loader, then driven through load/edit/export/import/reset cycles.
"""
import copy
import json
import os
import unittest

from src.entry import EntryState
from src.errors import CatalogLoadError, SnapshotImportError, SnapshotStoreError, UnknownEntryError
from src.snapshot_store import FileSnapshotStore
from src.translation_session import TranslationSession

BASE_CATALOG = {
    "languageName": {"message": "English"},
    "extensionName": {"message": "DownThemAll!", "description": "Name of the extension"},
    "item2": {"message": "Second"},
    "item10": {"message": "Tenth"},
    "downloadFrom": {
        "message": "Download from $URL$",
        "placeholders": {"url": {"content": "$1"}}
    },
}


class TestTranslationSession(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.test_dir = "temp_test_translation_session"
        os.makedirs(self.test_dir, exist_ok=True)
        self.store = FileSnapshotStore(os.path.join(self.test_dir, "store"))
        self.base_loads = 0

    def tearDown(self):
        for root, dirs, files in os.walk(self.test_dir, topdown=False):
            for name in files:
                os.remove(os.path.join(root, name))
            for name in dirs:
                os.rmdir(os.path.join(root, name))
        os.rmdir(self.test_dir)

    async def _load_base(self):
        self.base_loads += 1
        return copy.deepcopy(BASE_CATALOG)

    def _session(self, **kwargs):
        return TranslationSession(self._load_base, self.store, **kwargs)

    def _write(self, name, content):
        path = os.path.join(self.test_dir, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    async def test_fresh_load_has_nothing_translated(self):
        session = self._session()
        catalog = await session.load()
        await catalog.wait_idle()

        self.assertEqual(len(catalog), 5)
        self.assertEqual(catalog.summary.translated_count, 0)
        self.assertTrue(all(entry.state is EntryState.UNTOUCHED for entry in catalog))
        self.assertEqual(await self.store.get("_work"), "{}")
        await session.close()

    async def test_edits_are_persisted_and_restored(self):
        session = self._session()
        await session.load()
        session.translate("item2", "Zweites")
        session.translate("downloadFrom", "Herunterladen von $URL$")
        await session.close()

        restored = self._session()
        catalog = await restored.load()
        self.assertEqual(catalog["item2"].translated_text, "Zweites")
        self.assertEqual(catalog["downloadFrom"].state, EntryState.VALID)
        # Translated entries sort after the untranslated ones.
        self.assertEqual(
            [entry.id for entry in catalog],
            ["languageName", "extensionName", "item10", "downloadFrom", "item2"]
        )
        await restored.close()

    async def test_snapshot_entries_missing_from_base_are_dropped(self):
        await self.store.set("_work", json.dumps({
            "item2": {"message": "Zweites"},
            "removedKey": {"message": "Veraltet"},
        }))
        session = self._session()
        catalog = await session.load()
        await catalog.wait_idle()

        self.assertNotIn("removedKey", catalog)
        self.assertEqual(json.loads(await self.store.get("_work")), {"item2": {"message": "Zweites"}})
        await session.close()

    async def test_malformed_snapshot_is_treated_as_absent(self):
        await self.store.set("_work", "{definitely not json")
        session = self._session()
        with self.assertLogs("messages_editor.merge", level="ERROR"):
            catalog = await session.load()
        self.assertEqual(catalog.translated_entries, [])
        await session.close()

    async def test_export_reimport_round_trip(self):
        session = self._session()
        await session.load()
        session.translate("languageName", "Deutsch")
        session.translate("extensionName", "DownThemAll!")
        session.translate("item10", "Zehntes...")
        session.translate("downloadFrom", "Von $URL$")
        export_path = os.path.join(self.test_dir, "out", "messages.json")
        exported = session.export(export_path)
        before = {entry.id: entry.translated_text for entry in session.catalog.translated_entries}
        await session.reset()
        self.assertEqual(session.catalog.translated_entries, [])

        catalog = await session.import_work(export_path)
        after = {entry.id: entry.translated_text for entry in catalog.translated_entries}
        self.assertEqual(before, after)
        self.assertEqual(after["item10"], "Zehntes…")

        data = json.loads(exported)
        self.assertEqual(list(data), ["languageName", "downloadFrom", "extensionName", "item10"])
        self.assertEqual(data["extensionName"]["description"], "Name of the extension")
        self.assertEqual(data["downloadFrom"]["placeholders"], {"url": {"content": "$1"}})
        await session.close()

    async def test_reset_discards_work(self):
        session = self._session()
        await session.load()
        session.translate("item2", "Zweites")
        catalog = await session.reset()
        await catalog.wait_idle()

        self.assertEqual(catalog.translated_entries, [])
        self.assertEqual(await self.store.get("_work"), "{}")
        self.assertEqual(self.base_loads, 2)
        await session.close()

    async def test_reload_detaches_previous_catalog(self):
        session = self._session()
        first = await session.load()
        second = await session.load()
        self.assertTrue(first.closed)
        self.assertFalse(second.closed)

        first["item2"].translated_text = "stale"
        await second.wait_idle()
        self.assertNotIn("item2", json.loads(await self.store.get("_work")))
        await session.close()

    async def test_import_rejects_large_files(self):
        session = self._session(max_import_bytes=10)
        await session.load()
        path = self._write("big.json", json.dumps({"item2": {"message": "Zweites"}}))
        with self.assertRaisesRegex(SnapshotImportError, "File too large"):
            await session.import_work(path)
        await session.close()

    async def test_import_rejects_malformed_files_and_keeps_work(self):
        session = self._session()
        await session.load()
        session.translate("item2", "Zweites")
        await session.catalog.wait_idle()

        for name, content in [("bad.json", "{oops"), ("wrong.json", json.dumps({"item2": "Zweites"}))]:
            path = self._write(name, content)
            with self.assertRaises(SnapshotImportError):
                await session.import_work(path)

        self.assertEqual(json.loads(await self.store.get("_work")), {"item2": {"message": "Zweites"}})
        self.assertEqual(session.catalog["item2"].translated_text, "Zweites")
        await session.close()

    async def test_import_store_failure_keeps_current_catalog(self):
        session = self._session()
        catalog = await session.load()
        session.translate("item2", "Zweites")
        await catalog.wait_idle()
        path = self._write("import.json", json.dumps({"item10": {"message": "Zehntes"}}))

        original_set = self.store.set

        async def failing_set(key, value):
            raise SnapshotStoreError("disk full")

        self.store.set = failing_set
        with self.assertLogs("messages_editor.session", level="ERROR"):
            with self.assertRaises(SnapshotStoreError):
                await session.import_work(path)
        self.store.set = original_set

        self.assertIs(session.catalog, catalog)
        self.assertFalse(catalog.closed)
        session.translate("item10", "Zehntes Element")
        await session.catalog.wait_idle()
        self.assertEqual(
            json.loads(await self.store.get("_work")),
            {"item2": {"message": "Zweites"}, "item10": {"message": "Zehntes Element"}}
        )
        await session.close()

    async def test_reset_store_failure_keeps_current_catalog(self):
        session = self._session()
        catalog = await session.load()
        session.translate("item2", "Zweites")

        async def failing_remove(key):
            raise SnapshotStoreError("read-only")

        self.store.remove = failing_remove
        with self.assertRaises(SnapshotStoreError):
            await session.reset()

        self.assertIs(session.catalog, catalog)
        self.assertFalse(catalog.closed)
        self.assertEqual(json.loads(await self.store.get("_work")), {"item2": {"message": "Zweites"}})
        await session.close()

    async def test_unknown_id_raises(self):
        session = self._session()
        await session.load()
        with self.assertRaises(UnknownEntryError):
            session.translate("nope", "text")
        await session.close()

    async def test_base_catalog_failure_is_fatal(self):
        async def failing_loader():
            raise CatalogLoadError("offline")

        session = TranslationSession(failing_loader, self.store)
        with self.assertRaises(CatalogLoadError):
            await session.load()
        self.assertIsNone(session.catalog)


if __name__ == '__main__':
    unittest.main()
