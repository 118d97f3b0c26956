"""On-disk persistence for the search index and the parsed document cache."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Sequence

from mdfinder.index.text_index import TextIndex
from mdfinder.models import DocumentRecord, FileEntry, IndexMetadata
from mdfinder.utils.files import compute_fingerprint

LOGGER = logging.getLogger(__name__)

# Bump on any change to the chunk or metadata layout; older stores are rebuilt.
INDEX_VERSION = 6
META_FILE = "meta.json"
CHUNK_SUFFIX = ".json"


@dataclass(slots=True)
class StoreStats:
    enabled: bool
    index_path: Path
    meta_path: Path
    index_exists: bool
    meta_exists: bool
    file_count: int = 0
    timestamp: float | None = None
    age: int | None = None


class IndexStore:
    """Directory holding ``meta.json`` plus one JSON file per index chunk."""

    def __init__(self, root: Path, *, enabled: bool = True) -> None:
        self.root = Path(root)
        self.enabled = enabled

    @property
    def meta_path(self) -> Path:
        return self.root / META_FILE

    def load_meta(self) -> IndexMetadata | None:
        """Read the stored metadata, or ``None`` if absent or unreadable."""
        try:
            with self.meta_path.open("r", encoding="utf-8") as handle:
                return IndexMetadata.from_dict(json.load(handle))
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def is_fresh(self, files: Sequence[FileEntry]) -> bool:
        """True when the stored index reflects ``files`` exactly."""
        try:
            meta = self.load_meta()
            if meta is None or meta.version != INDEX_VERSION:
                return False
            if meta.file_count != len(files):
                return False
            for entry in files:
                stored = meta.hashes.get(entry.path)
                if stored is None or compute_fingerprint(entry.path) != stored:
                    return False
            return True
        except Exception as exc:  # pragma: no cover - fails closed
            LOGGER.debug("Freshness check failed for %s: %s", self.root, exc)
            return False

    def export(self, index: TextIndex, meta: IndexMetadata) -> bool:
        """Persist ``index`` and ``meta``, replacing any previous store.

        Everything is written to a temporary sibling directory which is then
        swapped in by rename, so a reader never sees metadata alongside a
        partial chunk set. Returns ``False`` when the location is not writable
        or the index cannot be serialized; the previous store is left as is.
        """
        staging: Path | None = None
        try:
            self.root.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(
                tempfile.mkdtemp(prefix=f".{self.root.name}.tmp-", dir=self.root.parent)
            )

            def write_chunk(key: str, data: str) -> None:
                (staging / f"{key}{CHUNK_SUFFIX}").write_text(data or "", encoding="utf-8")

            index.export(write_chunk)
            (staging / META_FILE).write_text(
                json.dumps(meta.to_dict(), indent=2), encoding="utf-8"
            )
            self._swap_in(staging)
            staging = None
            return True
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Could not persist index to %s: %s", self.root, exc)
            return False
        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)

    def _swap_in(self, staging: Path) -> None:
        if not self.root.exists():
            os.replace(staging, self.root)
            return
        retired = self.root.parent / f".{self.root.name}.old-{uuid.uuid4().hex[:8]}"
        os.replace(self.root, retired)
        os.replace(staging, self.root)
        shutil.rmtree(retired, ignore_errors=True)

    def _chunk_files(self) -> Iterator[Path]:
        for path in sorted(self.root.iterdir()):
            if path.name.endswith(CHUNK_SUFFIX) and path.name != META_FILE:
                yield path

    def import_index(self, factory: Callable[[], TextIndex]) -> TextIndex | None:
        """Rehydrate an index from disk.

        Returns ``None`` on any read or parse error, or when the chunk set is
        incomplete, so the caller rebuilds.
        """
        if not self.root.is_dir():
            return None
        try:
            chunks = list(self._chunk_files())
            if not chunks:
                return None
            index = factory()
            for path in chunks:
                key = path.name[: -len(CHUNK_SUFFIX)]
                index.import_chunk(key, path.read_text(encoding="utf-8"))
            index.verify()
            return index
        except (OSError, ValueError, KeyError, TypeError) as exc:
            LOGGER.debug("Discarding unreadable index at %s: %s", self.root, exc)
            return None

    def clear(self) -> bool:
        if not self.root.exists():
            return False
        try:
            shutil.rmtree(self.root)
        except OSError as exc:
            LOGGER.warning("Could not remove %s: %s", self.root, exc)
            return False
        return True

    def stats(self) -> StoreStats:
        stats = StoreStats(
            enabled=self.enabled,
            index_path=self.root,
            meta_path=self.meta_path,
            index_exists=self.root.exists(),
            meta_exists=self.meta_path.exists(),
        )
        meta = self.load_meta() if stats.meta_exists else None
        if meta is not None:
            stats.file_count = meta.file_count
            stats.timestamp = meta.timestamp or None
            if stats.timestamp:
                stats.age = round(time.time() - stats.timestamp)
        return stats


@dataclass(slots=True)
class CachedDocuments:
    cached_at: float
    documents: Dict[str, DocumentRecord]


class DocumentCacheStore:
    """Single JSON file of parsed documents keyed by absolute path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> CachedDocuments:
        """Load the cache; version mismatch or corruption gives an empty cache."""
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            if data.get("version") != INDEX_VERSION:
                return CachedDocuments(cached_at=0.0, documents={})
            documents = {
                path: DocumentRecord.from_dict(item)
                for path, item in (data.get("documents") or {}).items()
            }
            return CachedDocuments(cached_at=float(data.get("cachedAt", 0.0)), documents=documents)
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            return CachedDocuments(cached_at=0.0, documents={})

    def save(self, documents: Iterable[DocumentRecord]) -> bool:
        payload = {
            "version": INDEX_VERSION,
            "cachedAt": time.time(),
            "documents": {doc.path: doc.to_dict() for doc in documents},
        }
        tmp = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, default=str), encoding="utf-8")
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Could not write document cache %s: %s", self.path, exc)
            tmp.unlink(missing_ok=True)
            return False
        return True

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            LOGGER.warning("Could not remove %s: %s", self.path, exc)
            return False
        return True
