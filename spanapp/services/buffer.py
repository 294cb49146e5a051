"""Session-scoped store of unsaved per-document edits."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from spanapp.exc import SaveAllFailed, SaveFailed
from spanapp.services.entities import ChangeSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from spanapp.services.entities import Entity
    from spanapp.services.store import DocumentStore

logger = logging.getLogger(__name__)


class ChangeBuffer:
    """
    Pending annotation snapshots keyed by document ID, plus the dirty set.

    A document enters the buffer when it is first loaded (clean) or first
    edited (dirty), and leaves it when a save of its snapshot succeeds.  The
    buffer outlives document navigation, so edits to documents that are no
    longer displayed can still be saved.

    The snapshot mapping and the dirty set are replaced, never mutated, so a
    reader always sees a consistent pair.

    Keyword Args:
        max_workers: Number of threads used by :meth:`save_all`

    """

    #: Default number of concurrent saves in :meth:`save_all`.
    MAX_WORKERS: Final[int] = 4

    def __init__(self, max_workers: int = MAX_WORKERS) -> None:
        #: The number of concurrent saves in :meth:`save_all`.
        self.max_workers = max_workers
        #: The lock guarding the mapping and the dirty set.
        self._lock = threading.Lock()
        #: Snapshots by document ID.
        self._snapshots: Mapping[int, ChangeSnapshot] = MappingProxyType({})
        #: IDs of documents with unsaved edits.
        self._dirty: frozenset[int] = frozenset()

    @property
    def snapshots(self) -> Mapping[int, ChangeSnapshot]:
        """Read-only view of the buffered snapshots."""
        return self._snapshots

    @property
    def dirty_ids(self) -> frozenset[int]:
        """IDs of documents with unsaved edits."""
        return self._dirty

    @property
    def dirty_count(self) -> int:
        return len(self._dirty)

    @property
    def has_changes(self) -> bool:
        return bool(self._dirty)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._snapshots

    def is_dirty(self, doc_id: int) -> bool:
        return doc_id in self._dirty

    def snapshot(self, doc_id: int) -> ChangeSnapshot | None:
        return self._snapshots.get(doc_id)

    def seed(self, doc_id: int, entities: Iterable[Entity]) -> ChangeSnapshot:
        """
        Buffer the persisted entities of a freshly loaded document.

        A document already in the buffer keeps its snapshot: unsaved edits from
        an earlier visit win over the persisted state.

        Returns:
            The snapshot now buffered for ``doc_id``

        """
        with self._lock:
            existing = self._snapshots.get(doc_id)
            if existing is not None:
                return existing
            snapshot = ChangeSnapshot(tuple(entities))
            self._snapshots = MappingProxyType({**self._snapshots, doc_id: snapshot})
            return snapshot

    def record_edit(self, doc_id: int, entities: Iterable[Entity]) -> ChangeSnapshot:
        """
        Store the current entities of a document and mark it dirty.

        Returns:
            The new snapshot

        """
        snapshot = ChangeSnapshot(tuple(entities))
        with self._lock:
            self._snapshots = MappingProxyType({**self._snapshots, doc_id: snapshot})
            self._dirty = self._dirty | {doc_id}
        logger.debug(f"Document {doc_id} dirty with {len(snapshot.entities)} entities")
        return snapshot

    def _forget(self, doc_id: int, saved: ChangeSnapshot) -> None:
        """
        Drop a document after its snapshot ``saved`` was persisted.

        If the document was edited again while the save was in flight, the
        newer snapshot stays buffered and dirty.
        """
        with self._lock:
            if self._snapshots.get(doc_id) is not saved:
                logger.info(f"Document {doc_id} changed during save; keeping edits")
                return
            self._snapshots = MappingProxyType(
                {k: v for k, v in self._snapshots.items() if k != doc_id}
            )
            self._dirty = self._dirty - {doc_id}

    def _persist(
        self, doc_id: int, snapshot: ChangeSnapshot, store: DocumentStore
    ) -> None:
        try:
            store.update_document(doc_id, snapshot.payload())
        except Exception as e:
            logger.exception(f"Saving document {doc_id} failed")
            raise SaveFailed(doc_id, e) from e
        self._forget(doc_id, snapshot)

    def save(self, doc_id: int, store: DocumentStore) -> bool:
        """
        Persist the snapshot of one document.

        Saving a document that is not dirty does nothing.

        Args:
            doc_id: Document ID
            store: Persistence collaborator

        Raises:
            SaveFailed: If the store fails; the buffer is left untouched

        Returns:
            True if a save was performed, False if there was nothing to save

        """
        snapshot = self._snapshots.get(doc_id)
        if doc_id not in self._dirty or snapshot is None:
            return False
        self._persist(doc_id, snapshot, store)
        logger.info(f"Saved document {doc_id}")
        return True

    def save_all(self, store: DocumentStore) -> list[int]:
        """
        Persist every dirty document concurrently.

        The dirty set is captured when the call starts; dirty documents without
        a snapshot are skipped.  Each successful save removes its document.
        When all succeed the whole buffer is cleared.  Successful saves are not
        rolled back when others fail, so a retry only saves what failed.

        Args:
            store: Persistence collaborator

        Raises:
            SaveAllFailed: If any save fails, after all saves have finished

        Returns:
            IDs of the documents saved

        """
        snapshots = self._snapshots
        pending = [
            (doc_id, snapshots[doc_id])
            for doc_id in sorted(self._dirty)
            if doc_id in snapshots
        ]
        failures: dict[int, Exception] = {}
        saved: list[int] = []
        if pending:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    doc_id: executor.submit(self._persist, doc_id, snapshot, store)
                    for doc_id, snapshot in pending
                }
                for doc_id, future in futures.items():
                    try:
                        future.result()
                    except SaveFailed as e:
                        failures[doc_id] = e.error
                    else:
                        saved.append(doc_id)
        if failures:
            raise SaveAllFailed(failures)
        with self._lock:
            # Keep edits recorded while the saves were running
            changed = {
                doc_id
                for doc_id, snapshot in self._snapshots.items()
                if doc_id in self._dirty and snapshots.get(doc_id) is not snapshot
            }
            self._snapshots = MappingProxyType(
                {k: v for k, v in self._snapshots.items() if k in changed}
            )
            self._dirty = frozenset(changed)
        logger.info(f"Saved {len(saved)} document(s)")
        return saved

    def discard(self) -> None:
        """Drop all buffered snapshots and the dirty set."""
        with self._lock:
            self._snapshots = MappingProxyType({})
            self._dirty = frozenset()
