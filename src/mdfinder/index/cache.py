"""Process-scoped caches for the parsed corpus and the live index.

A :class:`SearchCache` is created by the caller and handed to the indexer, so
repeated searches in one session skip disk I/O entirely.

Staleness window: the document slot is trusted for the whole TTL as long as
the file count matches. Edits made inside that window are not seen until the
entry expires or the cache is cleared.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, List, Sequence, Tuple, TypeVar

from mdfinder.index.text_index import TextIndex
from mdfinder.models import DocumentRecord, FileEntry

DEFAULT_TTL = 10 * 60.0

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    value: T
    created: float

    def is_valid(self, ttl: float, now: float) -> bool:
        return now - self.created < ttl


@dataclass(slots=True)
class IndexSnapshot:
    key: str
    index: TextIndex
    documents: List[DocumentRecord]


def identity_key(paths: Sequence[str]) -> str:
    return "\n".join(sorted(paths))


class SearchCache:
    """Index cache plus single-slot document cache, both with a shared TTL."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._index: CacheEntry[IndexSnapshot] | None = None
        self._documents: CacheEntry[List[DocumentRecord]] | None = None

    def get_index(self, files: Sequence[FileEntry]) -> Tuple[TextIndex, List[DocumentRecord]] | None:
        """Return the cached index if fresh and built for exactly ``files``."""
        entry = self._index
        if entry is None or not entry.is_valid(self.ttl, self._clock()):
            return None
        if entry.value.key != identity_key([f.path for f in files]):
            return None
        return entry.value.index, entry.value.documents

    def put_index(
        self, files: Sequence[FileEntry], index: TextIndex, documents: List[DocumentRecord]
    ) -> None:
        snapshot = IndexSnapshot(
            key=identity_key([f.path for f in files]),
            index=index,
            documents=documents,
        )
        self._index = CacheEntry(snapshot, self._clock())

    def get_documents(self, files: Sequence[FileEntry]) -> List[DocumentRecord] | None:
        entry = self._documents
        if entry is None or not entry.is_valid(self.ttl, self._clock()):
            return None
        if len(entry.value) != len(files):
            return None
        return entry.value

    def put_documents(self, documents: List[DocumentRecord]) -> None:
        self._documents = CacheEntry(documents, self._clock())

    def clear_documents(self) -> None:
        self._documents = None

    def clear(self) -> None:
        self._index = None
        self._documents = None

    @property
    def has_index(self) -> bool:
        return self._index is not None

    @property
    def has_documents(self) -> bool:
        return self._documents is not None
