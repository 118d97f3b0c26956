"""Query syntax: plain AND terms, ``'exact`` substrings and ``!excluded`` terms."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

EXACT_MARKER = "'"
NEGATION_MARKER = "!"

# Whitespace-separated tokens; a double-quoted run stays inside one token.
_TOKEN = re.compile(r'(?:[^\s"]+|"[^"]*")+')


@dataclass(frozen=True, slots=True)
class QueryPlan:
    includes: Tuple[str, ...] = ()
    exact: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when nothing could select a document (exclusions alone never do)."""
        return not self.includes and not self.exact

    @property
    def scoring_terms(self) -> Tuple[str, ...]:
        return self.includes + self.exact


def parse_query(text: str) -> QueryPlan:
    includes: list[str] = []
    exact: list[str] = []
    excludes: list[str] = []

    for token in _TOKEN.findall(text or ""):
        if token.startswith(EXACT_MARKER):
            term = token[len(EXACT_MARKER) :]
            if len(term) > 1 and term.startswith('"') and term.endswith('"'):
                term = term[1:-1]
            if term:
                exact.append(term)
        elif token.startswith(NEGATION_MARKER):
            term = token[len(NEGATION_MARKER) :].lower()
            if term:
                excludes.append(term)
        else:
            includes.append(token)

    return QueryPlan(includes=tuple(includes), exact=tuple(exact), excludes=tuple(excludes))
