"""A translation session: base catalog + work snapshot -> live Catalog."""
import json
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional

import jsonschema

from src.app_config import AppConfig
from src.catalog import Catalog, StatusSink
from src.catalog_format import parse_catalog
from src.catalog_source import fetch_remote_catalog, load_catalog_file
from src.entry import Entry
from src.errors import SnapshotImportError, SnapshotStoreError
from src.merge import merge_work_into_base, parse_work_snapshot
from src.snapshot_store import SnapshotStore

logger = logging.getLogger("messages_editor.session")

BaseCatalogLoader = Callable[[], Awaitable[Dict[str, Dict[str, Any]]]]


def base_catalog_loader(config: AppConfig) -> BaseCatalogLoader:
    """Pick the base catalog producer described by the configuration."""
    async def load() -> Dict[str, Dict[str, Any]]:
        if config.base_catalog_path:
            return load_catalog_file(config.base_catalog_path)
        return await fetch_remote_catalog(
            config.resolved_catalog_url,
            timeout=config.fetch_timeout,
            max_retries=config.fetch_max_retries
        )
    return load


class TranslationSession:
    """
    Wires the collaborators around a Catalog.

    Every load discards the previous Catalog; its queued updates no longer
    touch the store.
    """

    def __init__(
            self,
            load_base: BaseCatalogLoader,
            store: SnapshotStore,
            status_sink: Optional[StatusSink] = None,
            work_key: str = "_work",
            max_import_bytes: int = 5 << 20
    ):
        self._load_base = load_base
        self.store = store
        self.status_sink = status_sink
        self.work_key = work_key
        self.max_import_bytes = max_import_bytes
        self.catalog: Optional[Catalog] = None

    @classmethod
    def from_config(cls, config: AppConfig, store: SnapshotStore,
                    status_sink: Optional[StatusSink] = None) -> "TranslationSession":
        return cls(
            base_catalog_loader(config),
            store,
            status_sink=status_sink,
            work_key=config.work_key,
            max_import_bytes=config.max_import_bytes
        )

    async def _read_work(self) -> Optional[Dict[str, Dict[str, Any]]]:
        try:
            serialized = await self.store.get(self.work_key)
        except SnapshotStoreError as e:
            logger.error("Could not read work snapshot, starting without it: %s", e)
            return None
        return parse_work_snapshot(serialized)

    async def load(self) -> Catalog:
        """
        Build a fresh Catalog from the base catalog and the stored work.

        Raises:
            CatalogLoadError: If the base catalog cannot be obtained.
        """
        base = await self._load_base()
        work = await self._read_work()
        seeded = merge_work_into_base(base, work)

        if self.catalog is not None:
            await self.catalog.wait_idle()
            self.catalog.close()
        self.catalog = Catalog(
            seeded,
            store=self.store,
            status_sink=self.status_sink,
            work_key=self.work_key
        )
        return self.catalog

    async def reset(self) -> Catalog:
        """
        Throw away all stored work and reload.

        Raises:
            SnapshotStoreError: If the stored work cannot be removed. The
                current catalog stays loaded.
        """
        if self.catalog is not None:
            await self.catalog.wait_idle()
        # load() detaches the current catalog only once the store has changed.
        await self.store.remove(self.work_key)
        logger.warning("Work snapshot removed.")
        return await self.load()

    async def import_work(self, path: str) -> Catalog:
        """
        Replace the stored work with the content of a messages.json file.

        Raises:
            SnapshotImportError: If the file is too large, unreadable or not a catalog.
            SnapshotStoreError: If the work cannot be stored. The current catalog
                stays loaded and keeps persisting edits.
        """
        try:
            size = os.path.getsize(path)
        except OSError as e:
            raise SnapshotImportError(f"Couldn't load: {e}") from e
        if size > self.max_import_bytes:
            raise SnapshotImportError("File too large! Did you select the wrong file?")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
            parse_catalog(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotImportError(f"Couldn't load: {e}") from e
        except jsonschema.ValidationError as e:
            raise SnapshotImportError(f"Couldn't load: {e.message}") from e

        if self.catalog is not None:
            # A queued write of the current catalog must not overwrite the import.
            await self.catalog.wait_idle()
        try:
            await self.store.set(self.work_key, content)
        except SnapshotStoreError as e:
            logger.error("Could not store imported work; keeping the current catalog: %s", e)
            raise
        logger.info("Imported work from '%s'.", path)
        return await self.load()

    def translate(self, entry_id: str, text: str) -> Entry:
        """
        Edit one translation.

        Raises:
            UnknownEntryError: If the catalog has no such id.
        """
        entry = self._require_catalog()[entry_id]
        entry.translated_text = text
        return entry

    def export(self, path: str) -> str:
        """Write the translated entries to path and return the written JSON."""
        content = self._require_catalog().to_json()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
            f.write("\n")
        logger.info("Exported %d translations to '%s'.", len(self.catalog.translated_entries), path)
        return content

    def _require_catalog(self) -> Catalog:
        if self.catalog is None:
            raise RuntimeError("No catalog loaded; call load() first.")
        return self.catalog

    async def close(self) -> None:
        """Flush the pending snapshot write and detach the catalog."""
        if self.catalog is not None:
            await self.catalog.wait_idle()
            self.catalog.close()
