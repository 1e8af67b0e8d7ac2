"""Ordered collection of entries with a coalesced aggregate summary."""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from src.entry import Entry
from src.errors import SnapshotStoreError, UnknownEntryError
from src.snapshot_store import SnapshotStore
from src.sorting import natural_compare, sort

logger = logging.getLogger("messages_editor.catalog")

WORK_KEY = "_work"

# Identifiers with this prefix describe the locale itself and are listed first.
META_ID_PREFIX = "language"


@dataclass(frozen=True)
class CatalogSummary:
    """Catalog-wide completion and error counts."""
    translated_count: int
    total_count: int
    percent_translated: float
    unchanged_count: int
    error_count: int


StatusSink = Callable[[CatalogSummary], None]


def _is_meta_id(entry_id: str) -> bool:
    return entry_id.startswith(META_ID_PREFIX)


class Catalog:
    """
    Owns the entries of one locale and keeps its summary current.

    Entry notifications arriving in one burst are coalesced into a single
    task queued on the event loop; that task recomputes the summary, hands it
    to the status sink and persists the serialized catalog.
    """

    def __init__(
            self,
            seed: Mapping[str, Mapping[str, Any]],
            store: Optional[SnapshotStore] = None,
            status_sink: Optional[StatusSink] = None,
            work_key: str = WORK_KEY,
            loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self._store = store
        self._status_sink = status_sink
        self._work_key = work_key
        self._loop = loop or asyncio.get_running_loop()
        self._dirty = False
        self._task: Optional[asyncio.Task] = None
        self._last_changed: Optional[Entry] = None
        self._closed = False
        self.summary: Optional[CatalogSummary] = None
        self.update_count = 0

        ordered = sort(
            seed.items(),
            lambda item: (
                -_is_meta_id(item[0]),
                -(not item[1].get('messageTranslated')),
                item[0]),
            natural_compare
        )
        self.entries: List[Entry] = [
            Entry(entry_id, source, on_update=self.updated)
            for entry_id, source in ordered
        ]
        self._by_id: Dict[str, Entry] = {entry.id: entry for entry in self.entries}
        for entry in self.entries:
            entry.validate()
        self.updated()
        logger.info("Catalog built with %d entries.", len(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._by_id

    def __getitem__(self, entry_id: str) -> Entry:
        try:
            return self._by_id[entry_id]
        except KeyError:
            raise UnknownEntryError(f"Unknown message id '{entry_id}'") from None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def translated_entries(self) -> List[Entry]:
        return [entry for entry in self.entries if entry.is_translated]

    def updated(self, entry: Optional[Entry] = None) -> None:
        """
        Request an aggregate update.

        Calls within one burst share a single task. A call made while that
        task is still persisting marks the catalog dirty; the same task then
        runs one more round, so snapshot writes never overlap.
        """
        if self._closed:
            return
        self._last_changed = entry
        self._dirty = True
        if self._task is not None and not self._task.done():
            return
        self._task = self._loop.create_task(self._run_updates())
        self._task.add_done_callback(self._forget_task)

    def _forget_task(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None

    def compute_summary(self) -> CatalogSummary:
        translated = self.translated_entries
        total = len(self.entries)
        return CatalogSummary(
            translated_count=len(translated),
            total_count=total,
            percent_translated=len(translated) / total if total else 0.0,
            unchanged_count=sum(1 for entry in translated if entry.is_unchanged),
            error_count=sum(entry.error_count for entry in translated),
        )

    async def _run_updates(self) -> None:
        while self._dirty and not self._closed:
            self._dirty = False
            await self._update_once()

    async def _update_once(self) -> None:
        last_changed, self._last_changed = self._last_changed, None
        self.update_count += 1
        if last_changed is not None:
            logger.debug("Recomputing summary after change to '%s'.", last_changed.id)
        try:
            self.summary = self.compute_summary()
            snapshot = self.to_json()
            if self._status_sink is not None:
                self._status_sink(self.summary)
        except Exception:
            logger.exception("Failed to recompute catalog summary")
            return

        if self._store is None:
            return
        try:
            await self._store.set(self._work_key, snapshot)
        except SnapshotStoreError as e:
            # The next edit schedules another write.
            logger.error("Could not persist work snapshot: %s", e)
        except Exception:
            logger.exception("Unexpected failure while persisting work snapshot")

    async def wait_idle(self) -> None:
        """Wait until no aggregate update is queued or running."""
        while self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)

    def close(self) -> None:
        """Detach the catalog and cancel its pending update."""
        self._closed = True
        self._dirty = False
        if self._task is not None:
            self._task.cancel()

    def to_catalog_form(self) -> Dict[str, Dict[str, Any]]:
        """
        Serialize translated entries in messages.json form.

        Output order only depends on the ids, so identical content always
        produces identical snapshots.

        Returns:
            A dictionary keyed by message id.
        """
        ordered = sort(
            self.translated_entries,
            lambda entry: (-_is_meta_id(entry.id), entry.id),
            natural_compare
        )
        return {entry.id: entry.to_catalog_form() for entry in ordered}

    def to_json(self) -> str:
        return json.dumps(self.to_catalog_form(), ensure_ascii=False, indent=2)
