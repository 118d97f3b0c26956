"""Full-text index primitive used by the search pipeline.

The rest of the package only talks to the :class:`TextIndex` protocol;
:class:`InvertedTextIndex` is the bundled implementation: a per-field inverted
index with prefix ("forward") matching whose state exports to JSON chunks.
"""

from __future__ import annotations

import bisect
import json
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Protocol, Sequence

from mdfinder.models import DocumentRecord

INDEXED_FIELDS = ("title", "description", "tags", "body")
DEFAULT_FIELD_WEIGHTS: Mapping[str, float] = {
    "title": 2.0,
    "description": 1.5,
    "tags": 1.5,
    "body": 1.0,
}

_TOKEN = re.compile(r"\w+", re.UNICODE)

ChunkWriter = Callable[[str, str], None]


def tokenize(text: str) -> List[str]:
    return _TOKEN.findall(text.lower())


@dataclass(slots=True)
class FieldHits:
    """Document ids matching a term in one field, in insertion order."""

    field: str
    ids: List[str] = field(default_factory=list)


class TextIndex(Protocol):
    def add(self, document: DocumentRecord) -> None: ...

    def search(self, term: str, *, limit: int | None = None) -> List[FieldHits]: ...

    def get(self, doc_id: str) -> DocumentRecord | None: ...

    def export(self, writer: ChunkWriter) -> None: ...

    def import_chunk(self, key: str, data: str) -> None: ...

    def verify(self) -> None: ...


class InvertedTextIndex:
    """In-memory inverted index over the document fields.

    A search term is tokenized; within a field every token must prefix-match
    some indexed token. Fields are reported in descending weight order.
    """

    STORE_KEY = "store"

    def __init__(self, weights: Mapping[str, float] | None = None) -> None:
        merged = dict(DEFAULT_FIELD_WEIGHTS)
        if weights:
            merged.update({k: float(v) for k, v in weights.items() if k in INDEXED_FIELDS})
        self.weights = merged
        self.fields = tuple(sorted(INDEXED_FIELDS, key=lambda name: -merged[name]))
        self._documents: Dict[str, DocumentRecord] = {}
        self._order: Dict[str, int] = {}
        self._sequence = 0
        self._postings: Dict[str, Dict[str, set[str]]] = {name: {} for name in INDEXED_FIELDS}
        self._vocab: Dict[str, List[str] | None] = {name: None for name in INDEXED_FIELDS}
        self._imported: set[str] = set()

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents

    @property
    def ids(self) -> List[str]:
        return sorted(self._documents, key=self._order.__getitem__)

    def add(self, document: DocumentRecord) -> None:
        doc_id = document.path
        if doc_id in self._documents:
            self.remove(doc_id)
        self._order[doc_id] = self._next_position()
        self._documents[doc_id] = document
        for name in INDEXED_FIELDS:
            postings = self._postings[name]
            for token in set(tokenize(getattr(document, name) or "")):
                postings.setdefault(token, set()).add(doc_id)
            self._vocab[name] = None

    def _next_position(self) -> int:
        self._sequence += 1
        return self._sequence

    def remove(self, doc_id: str) -> None:
        if self._documents.pop(doc_id, None) is None:
            return
        self._order.pop(doc_id, None)
        for name in INDEXED_FIELDS:
            postings = self._postings[name]
            for token in [t for t, ids in postings.items() if doc_id in ids]:
                postings[token].discard(doc_id)
                if not postings[token]:
                    del postings[token]
            self._vocab[name] = None

    def get(self, doc_id: str) -> DocumentRecord | None:
        return self._documents.get(doc_id)

    def _sorted_vocab(self, name: str) -> List[str]:
        vocab = self._vocab[name]
        if vocab is None:
            vocab = sorted(self._postings[name])
            self._vocab[name] = vocab
        return vocab

    def _prefix_ids(self, name: str, prefix: str) -> set[str]:
        vocab = self._sorted_vocab(name)
        postings = self._postings[name]
        found: set[str] = set()
        position = bisect.bisect_left(vocab, prefix)
        while position < len(vocab) and vocab[position].startswith(prefix):
            found |= postings[vocab[position]]
            position += 1
        return found

    def search(self, term: str, *, limit: int | None = None) -> List[FieldHits]:
        tokens = tokenize(term)
        if not tokens:
            return []

        results: List[FieldHits] = []
        for name in self.fields:
            matched: set[str] | None = None
            for token in tokens:
                ids = self._prefix_ids(name, token)
                matched = ids if matched is None else matched & ids
                if not matched:
                    break
            if not matched:
                continue
            ordered = sorted(matched, key=self._order.__getitem__)
            if limit is not None:
                ordered = ordered[:limit]
            results.append(FieldHits(field=name, ids=ordered))
        return results

    def export(self, writer: ChunkWriter) -> None:
        """Write the index as ``(key, json)`` chunks: one per field plus the store."""
        for name in INDEXED_FIELDS:
            payload = {token: sorted(ids) for token, ids in self._postings[name].items()}
            writer(f"{name}.map", json.dumps(payload))
        documents = [self._documents[doc_id].to_dict() for doc_id in self.ids]
        writer(self.STORE_KEY, json.dumps(documents, default=str))

    def import_chunk(self, key: str, data: str) -> None:
        """Load one exported chunk. Raises ``ValueError`` for unknown or bad data."""
        payload = json.loads(data) if data else None
        self._imported.add(key)
        if key == self.STORE_KEY:
            for item in payload or []:
                document = DocumentRecord.from_dict(item)
                if document.path not in self._order:
                    self._order[document.path] = self._next_position()
                self._documents[document.path] = document
            return

        name, _, suffix = key.partition(".")
        if suffix != "map" or name not in self._postings:
            raise ValueError(f"Unknown index chunk: {key}")
        self._postings[name] = {token: set(ids) for token, ids in (payload or {}).items()}
        self._vocab[name] = None

    def verify(self) -> None:
        """Check an imported index is whole. Raises ``ValueError`` otherwise.

        Every chunk must have been loaded and every posted id must name a
        stored document.
        """
        expected = {self.STORE_KEY} | {f"{name}.map" for name in INDEXED_FIELDS}
        missing = expected - self._imported
        if missing:
            raise ValueError(f"Missing index chunks: {', '.join(sorted(missing))}")
        for name, postings in self._postings.items():
            for ids in postings.values():
                unknown = ids - self._documents.keys()
                if unknown:
                    raise ValueError(f"Field {name} names unknown document {min(unknown)}")


def build_index(
    documents: Iterable[DocumentRecord], weights: Mapping[str, float] | None = None
) -> InvertedTextIndex:
    index = InvertedTextIndex(weights)
    for document in documents:
        index.add(document)
    return index


def documents_in_order(index: TextIndex, ids: Sequence[str]) -> List[DocumentRecord]:
    """Fetch documents for ``ids`` from the index, skipping unknown ids."""
    documents: List[DocumentRecord] = []
    for doc_id in ids:
        document = index.get(doc_id)
        if document is not None:
            documents.append(document)
    return documents
