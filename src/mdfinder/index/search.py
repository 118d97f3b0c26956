"""Fuzzy document search over the text index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from mdfinder.config import AppConfig, PreviewConfig
from mdfinder.index.indexer import Indexer
from mdfinder.index.query import QueryPlan, parse_query
from mdfinder.index.text_index import TextIndex
from mdfinder.ingestion.markdown_loader import USEFUL_FRONTMATTER, filter_frontmatter
from mdfinder.models import DocumentRecord, FileEntry, RankedResult
from mdfinder.utils.context import extract_paragraph_context, extract_title_preview
from mdfinder.utils.text import find_term_position, truncate_preview

LOGGER = logging.getLogger(__name__)

TITLE_FACTOR = 0.1
SUMMARY_FACTOR = 0.3
BODY_FACTOR = 0.6
MAX_SCORE = 0.99
RAW_PREVIEW_LENGTH = 200
SINGLE_TERM_OVERFETCH = 3


@dataclass(slots=True)
class ScoredDocument:
    document: DocumentRecord
    score: float
    matched_fields: Tuple[str, ...]


def matches_exact_terms(document: DocumentRecord, terms: Sequence[str]) -> bool:
    """Every term must occur case-sensitively in title, body, description or tags."""
    if not terms:
        return True
    text = " ".join((document.title, document.body, document.description, document.tags))
    return all(term in text for term in terms)


def matches_exclude_terms(document: DocumentRecord, terms: Sequence[str]) -> bool:
    """True if any (lower-cased) term occurs in the document or its path."""
    if not terms:
        return False
    text = " ".join(
        (document.file, document.title, document.body, document.description, document.tags)
    ).lower()
    return any(term in text for term in terms)


def score_document(document: DocumentRecord, terms: Iterable[str]) -> Tuple[float, Tuple[str, ...]]:
    """Field-tiered score (lower is better) and the fields any term matched.

    Each term multiplies the score by the factor of the best field it occurs
    in; terms found nowhere leave it unchanged.
    """
    fields = {
        "title": document.title.lower(),
        "description": document.description.lower(),
        "tags": document.tags.lower(),
        "body": document.body.lower(),
    }
    score = 1.0
    matched: set[str] = set()
    for term in terms:
        needle = term.lower()
        hits = {name for name, text in fields.items() if needle in text}
        matched |= hits
        if "title" in hits:
            score *= TITLE_FACTOR
        elif "description" in hits or "tags" in hits:
            score *= SUMMARY_FACTOR
        elif "body" in hits:
            score *= BODY_FACTOR
    ordered = tuple(name for name in fields if name in matched)
    return min(score, MAX_SCORE), ordered


def _collect(index: TextIndex, term: str, limit: int | None, found: Dict[str, DocumentRecord]) -> set[str]:
    ids: set[str] = set()
    for hits in index.search(term, limit=limit):
        for doc_id in hits.ids:
            ids.add(doc_id)
            if doc_id not in found:
                document = index.get(doc_id)
                if document is not None:
                    found[doc_id] = document
    return ids


def retrieve(
    index: TextIndex, documents: Sequence[DocumentRecord], plan: QueryPlan, limit: int
) -> List[DocumentRecord]:
    """Candidate documents for ``plan`` before filtering and ranking."""
    if plan.is_empty:
        return []
    if not plan.includes:
        return list(documents)

    found: Dict[str, DocumentRecord] = {}
    if len(plan.includes) == 1:
        _collect(index, plan.includes[0], limit * SINGLE_TERM_OVERFETCH, found)
        return list(found.values())

    survivors: set[str] | None = None
    for term in plan.includes:
        ids = _collect(index, term, None, found)
        survivors = ids if survivors is None else survivors & ids
        if not survivors:
            return []
    return [document for doc_id, document in found.items() if doc_id in survivors]


def evaluate(
    index: TextIndex, documents: Sequence[DocumentRecord], plan: QueryPlan, limit: int
) -> List[ScoredDocument]:
    """Retrieve, filter, score and rank documents for ``plan``."""
    candidates = retrieve(index, documents, plan, limit)
    if plan.exact:
        candidates = [doc for doc in candidates if matches_exact_terms(doc, plan.exact)]
    if plan.excludes:
        candidates = [doc for doc in candidates if not matches_exclude_terms(doc, plan.excludes)]

    terms = plan.scoring_terms
    scored = []
    for document in candidates:
        score, fields = score_document(document, terms)
        scored.append(ScoredDocument(document=document, score=score, matched_fields=fields))
    scored.sort(key=lambda item: item.score)
    return scored[:limit]


def build_preview(
    document: DocumentRecord,
    plan: QueryPlan,
    *,
    max_chars: int,
    max_lines: int,
) -> str:
    """Preview text: title block, paragraph around a body hit, or a prefix."""
    title = document.title.lower()
    title_match = any(term.lower() in title for term in plan.scoring_terms)
    body_match = find_term_position(document.body, plan.includes)

    preview = ""
    if title_match and (body_match is None or body_match.length < 3):
        preview = extract_title_preview(document.body, document.title, max_lines)
    elif body_match is not None and body_match.length >= 2:
        preview = extract_paragraph_context(document.body, body_match.start, max_lines)

    if not preview:
        preview = document.description
        if len(preview) < max_chars:
            preview = document.body[:max_chars]
        preview = truncate_preview(preview, max_chars)
    return preview


class Searcher:
    """High-level API: keep the index fresh and answer fuzzy queries."""

    def __init__(
        self,
        indexer: Indexer,
        *,
        preview: PreviewConfig | None = None,
        frontmatter_fields: Sequence[str] = USEFUL_FRONTMATTER,
    ) -> None:
        self.indexer = indexer
        self.preview = preview or PreviewConfig()
        self.frontmatter_fields = tuple(frontmatter_fields)

    @classmethod
    def from_config(cls, config: AppConfig, indexer: Indexer | None = None) -> "Searcher":
        return cls(
            indexer or Indexer.from_config(config),
            preview=config.preview,
            frontmatter_fields=config.frontmatter_fields,
        )

    def search(
        self,
        files: Sequence[FileEntry],
        query: str,
        *,
        limit: int = 10,
        raw: bool = False,
        rebuild_index: bool = False,
    ) -> List[RankedResult]:
        plan = parse_query(query)
        built = self.indexer.build_or_load(files, force_rebuild=rebuild_index)
        if plan.is_empty:
            return []

        ranked = evaluate(built.index, built.documents, plan, limit)
        LOGGER.debug("Query %r matched %d document(s)", query, len(ranked))

        results: List[RankedResult] = []
        for rank, item in enumerate(ranked):
            document = item.document
            max_chars = RAW_PREVIEW_LENGTH if raw else self.preview.length_for_rank(rank)
            frontmatter = document.frontmatter
            if not raw:
                frontmatter = filter_frontmatter(frontmatter, self.frontmatter_fields)
            results.append(
                RankedResult(
                    file=document.file,
                    path=document.path,
                    title=document.title,
                    score=item.score,
                    matched_fields=item.matched_fields,
                    preview=build_preview(
                        document, plan, max_chars=max_chars, max_lines=self.preview.max_lines
                    ),
                    frontmatter=frontmatter,
                )
            )
        return results
