"""Text helpers for previews and term lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

_TRAILING_PARTIAL_WORD = re.compile(r"\s+\S*$")


@dataclass(slots=True)
class TermPosition:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def find_term_position(text: str, terms: Iterable[str]) -> TermPosition | None:
    """Locate the first term (case-insensitive) that occurs in ``text``."""
    if not text:
        return None
    lowered = text.lower()
    for term in terms:
        clean = term.lower()
        if not clean:
            continue
        index = lowered.find(clean)
        if index != -1:
            return TermPosition(start=index, end=index + len(clean))
    return None


def truncate_preview(text: str, max_chars: int) -> str:
    """Cut ``text`` at ``max_chars`` on a word boundary and append ``...``.

    Text shorter than ``max_chars`` is returned unchanged.
    """
    if len(text) < max_chars:
        return text
    return _TRAILING_PARTIAL_WORD.sub("", text[:max_chars]) + "..."
