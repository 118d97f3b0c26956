"""Index lifecycle: load a fresh index or rebuild and persist a stale one."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Sequence

from mdfinder.config import LEGACY_CACHE_FILES, AppConfig
from mdfinder.index.cache import SearchCache
from mdfinder.index.reconcile import DeltaReconciler, StalenessPolicy
from mdfinder.index.storage import INDEX_VERSION, DocumentCacheStore, IndexStore, StoreStats
from mdfinder.index.text_index import InvertedTextIndex, TextIndex, documents_in_order
from mdfinder.models import DocumentRecord, FileEntry, IndexMetadata
from mdfinder.utils.files import compute_fingerprints

LOGGER = logging.getLogger(__name__)

DEFAULT_PROGRESS_THRESHOLD = 100


@dataclass(slots=True)
class BuildResult:
    index: TextIndex
    documents: List[DocumentRecord] = field(default_factory=list)
    source: str = "built"


class Indexer:
    """Coordinates the memory cache, the on-disk store and index rebuilds."""

    def __init__(
        self,
        store: IndexStore,
        document_store: DocumentCacheStore | None = None,
        cache: SearchCache | None = None,
        *,
        weights: Mapping[str, float] | None = None,
        policy: StalenessPolicy = StalenessPolicy.FINGERPRINT,
        progress_threshold: int = DEFAULT_PROGRESS_THRESHOLD,
        legacy_files: Sequence[Path] = (),
    ) -> None:
        self.store = store
        self.document_store = document_store
        self.cache = cache if cache is not None else SearchCache()
        self.weights = dict(weights or {})
        self.progress_threshold = progress_threshold
        self.legacy_files = list(legacy_files)
        self.reconciler = DeltaReconciler(document_store, self.cache, policy=policy)

    @classmethod
    def from_config(cls, config: AppConfig, cache: SearchCache | None = None) -> "Indexer":
        index_path = config.resolve_index_path()
        document_store = None
        if config.index_enabled:
            document_store = DocumentCacheStore(config.resolve_document_cache_path())
        return cls(
            IndexStore(index_path, enabled=config.index_enabled),
            document_store,
            cache if cache is not None else SearchCache(ttl=config.cache_ttl),
            weights=config.weights,
            policy=StalenessPolicy(config.staleness_policy),
            progress_threshold=config.progress_threshold,
            legacy_files=[index_path.parent / name for name in LEGACY_CACHE_FILES],
        )

    @property
    def enabled(self) -> bool:
        return self.store.enabled

    def new_index(self) -> InvertedTextIndex:
        return InvertedTextIndex(self.weights)

    def build_or_load(self, files: Sequence[FileEntry], *, force_rebuild: bool = False) -> BuildResult:
        """Return an index and documents that reflect ``files``."""
        if not self.enabled:
            documents = self.reconciler.reconcile(files, force=force_rebuild)
            index = self.new_index()
            for document in documents:
                index.add(document)
            return BuildResult(index=index, documents=documents, source="ephemeral")

        if not force_rebuild:
            hit = self.cache.get_index(files)
            if hit is not None:
                return BuildResult(index=hit[0], documents=hit[1], source="memory")

            if self.store.is_fresh(files):
                loaded = self._load_from_store(files)
                if loaded is not None:
                    return loaded

        return self.rebuild(files, force=force_rebuild)

    def _load_from_store(self, files: Sequence[FileEntry]) -> BuildResult | None:
        show_progress = len(files) >= self.progress_threshold
        if show_progress:
            LOGGER.info("Loading cached index (%d files)...", len(files))
        index = self.store.import_index(self.new_index)
        if index is None:
            return None
        meta = self.store.load_meta()
        ids = list(meta.hashes) if meta is not None else [f.path for f in files]
        documents = documents_in_order(index, ids)
        self.cache.put_index(files, index, documents)
        self.cache.put_documents(documents)
        return BuildResult(index=index, documents=documents, source="disk")

    def rebuild(self, files: Sequence[FileEntry], *, force: bool = True) -> BuildResult:
        """Build a new index from ``files`` and persist it."""
        self._delete_legacy_files()
        # The store was stale, so the memory slot cannot be trusted here.
        documents = self.reconciler.reconcile(files, force=force, trust_memory=False)

        show_progress = len(files) >= self.progress_threshold
        LOGGER.log(
            logging.INFO if show_progress else logging.DEBUG,
            "Building index (%d files)...",
            len(files),
        )
        index = self.new_index()
        self._add_documents(index, documents, show_progress)

        # Fingerprints are recomputed for every file, not taken from the
        # records, so the next freshness check compares against the disk.
        meta = IndexMetadata(
            version=INDEX_VERSION,
            timestamp=time.time(),
            file_count=len(files),
            hashes=compute_fingerprints(files),
        )
        self.store.export(index, meta)
        self.cache.put_index(files, index, documents)
        self.cache.put_documents(documents)
        return BuildResult(index=index, documents=documents, source="built")

    def _add_documents(
        self, index: TextIndex, documents: Sequence[DocumentRecord], show_progress: bool
    ) -> None:
        step = max(1, len(documents) // 10)
        for position, document in enumerate(documents, start=1):
            index.add(document)
            if show_progress and position % step == 0:
                LOGGER.info("Indexed %d/%d documents", position, len(documents))

    def _delete_legacy_files(self) -> None:
        for path in self.legacy_files:
            try:
                path.unlink()
                LOGGER.debug("Removed legacy cache file %s", path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                LOGGER.debug("Could not remove legacy cache file %s: %s", path, exc)

    def clear(self) -> bool:
        """Drop the persisted store, the document cache file and memory caches."""
        cleared = self.store.clear()
        if self.document_store is not None:
            cleared = self.document_store.clear() or cleared
        self._delete_legacy_files()
        self.cache.clear()
        return cleared

    def stats(self) -> StoreStats:
        return self.store.stats()

