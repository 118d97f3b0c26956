"""Incremental refresh of the parsed document set."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from mdfinder.index.cache import SearchCache
from mdfinder.index.storage import DocumentCacheStore
from mdfinder.ingestion.markdown_loader import build_document
from mdfinder.models import DocumentRecord, FileEntry
from mdfinder.utils.files import compute_fingerprint, get_mtime

LOGGER = logging.getLogger(__name__)


class StalenessPolicy(str, enum.Enum):
    """Signal used to decide whether a cached record is out of date."""

    FINGERPRINT = "fingerprint"
    MTIME = "mtime"


@dataclass(slots=True)
class ChangeSet:
    added: List[FileEntry] = field(default_factory=list)
    changed: List[FileEntry] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    unchanged: List[FileEntry] = field(default_factory=list)

    @property
    def needs_refresh(self) -> bool:
        return bool(self.added or self.changed or self.removed)

    def summary(self) -> str:
        total = len(self.added) + len(self.changed)
        if self.removed:
            return f"Refreshing index ({total} changed, {len(self.removed)} removed)..."
        plural = "" if total == 1 else "s"
        return f"Refreshing index ({total} file{plural} changed)..."


def detect_changes(
    files: Sequence[FileEntry],
    cached: Mapping[str, DocumentRecord],
    *,
    cached_at: float = 0.0,
    policy: StalenessPolicy = StalenessPolicy.FINGERPRINT,
) -> ChangeSet:
    """Classify ``files`` against ``cached`` records."""
    changes = ChangeSet()
    current = set()
    for entry in files:
        current.add(entry.path)
        record = cached.get(entry.path)
        if record is None:
            changes.added.append(entry)
        elif policy is StalenessPolicy.MTIME:
            mtime = get_mtime(entry.path)
            if mtime is None or mtime > cached_at:
                changes.changed.append(entry)
            else:
                changes.unchanged.append(entry)
        elif compute_fingerprint(entry.path) != record.fingerprint:
            changes.changed.append(entry)
        else:
            changes.unchanged.append(entry)

    changes.removed = [path for path in cached if path not in current]
    return changes


def parse_documents(files: Sequence[FileEntry]) -> List[DocumentRecord]:
    """Parse every file, skipping the ones that cannot be read."""
    documents: List[DocumentRecord] = []
    for entry in files:
        document = _parse(entry)
        if document is not None:
            documents.append(document)
    return documents


def _parse(entry: FileEntry) -> DocumentRecord | None:
    try:
        return build_document(
            entry, compute_fingerprint(entry.path), get_mtime(entry.path) or 0.0
        )
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Skipping %s: %s", entry.relative_path, exc)
        return None


class DeltaReconciler:
    """Keeps the parsed document list in step with the files on disk.

    Only added or changed files are parsed; unchanged records come from the
    document cache file.
    """

    def __init__(
        self,
        store: DocumentCacheStore | None,
        cache: SearchCache,
        *,
        policy: StalenessPolicy = StalenessPolicy.FINGERPRINT,
    ) -> None:
        self.store = store
        self.cache = cache
        self.policy = policy
        self.last_changes: ChangeSet | None = None

    def reconcile(
        self,
        files: Sequence[FileEntry],
        *,
        force: bool = False,
        trust_memory: bool = True,
    ) -> List[DocumentRecord]:
        """Return current documents, parsing only what changed.

        With ``trust_memory`` a live in-memory entry is returned without any
        stat calls (see the staleness window in :mod:`mdfinder.index.cache`).
        """
        if trust_memory and not force:
            hit = self.cache.get_documents(files)
            if hit is not None:
                LOGGER.debug("Using in-memory document cache (%d documents)", len(hit))
                self.last_changes = None
                return hit

        if self.store is None:
            documents = parse_documents(files)
            self.cache.put_documents(documents)
            self.last_changes = ChangeSet(added=list(files))
            return documents

        loaded = self.store.load()
        cached = {} if force else loaded.documents
        changes = detect_changes(files, cached, cached_at=loaded.cached_at, policy=self.policy)
        self.last_changes = changes

        if changes.needs_refresh:
            LOGGER.info(changes.summary())

        reparsed: Dict[str, DocumentRecord] = {}
        for entry in changes.added + changes.changed:
            document = _parse(entry)
            if document is not None:
                reparsed[entry.path] = document

        stale = {entry.path for entry in changes.added + changes.changed}
        documents: List[DocumentRecord] = []
        for entry in files:
            if entry.path in stale:
                document = reparsed.get(entry.path)
            else:
                document = cached.get(entry.path)
            if document is not None:
                documents.append(document)

        if changes.needs_refresh:
            self.store.save(documents)

        self.cache.put_documents(documents)
        return documents
