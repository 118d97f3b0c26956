"""Regex line search with paragraph context and heading breadcrumbs."""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

from mdfinder.ingestion.markdown_loader import (
    USEFUL_FRONTMATTER,
    build_heading_path,
    extract_headings,
    filter_frontmatter,
    parse_markdown_file,
)
from mdfinder.models import FileEntry, GrepMatch, GrepResult
from mdfinder.utils.context import extract_smart_context

LOGGER = logging.getLogger(__name__)


def _overlaps(start: int, end: int, accepted: Sequence[Tuple[int, int]]) -> bool:
    return any(start <= other_end and end >= other_start for other_start, other_end in accepted)


def grep_lines(
    lines: Sequence[str],
    regex: re.Pattern[str],
    *,
    context: int = 2,
    raw: bool = False,
) -> List[GrepMatch]:
    """Match ``regex`` line by line, reporting each context window once.

    A hit whose window overlaps an already reported window is dropped, so a
    paragraph with several hits appears a single time.
    """
    headings = [] if raw else extract_headings(lines)
    accepted: List[Tuple[int, int]] = []
    matches: List[GrepMatch] = []

    for index, line in enumerate(lines):
        if not regex.search(line):
            continue
        if raw:
            start = max(0, index - context)
            end = min(len(lines) - 1, index + context)
        else:
            start, end = extract_smart_context(lines, index)
        if _overlaps(start, end, accepted):
            continue
        accepted.append((start, end))
        matches.append(
            GrepMatch(
                line_number=index + 1,
                line=line.strip(),
                heading_path=None if raw else build_heading_path(headings, index),
                context="\n".join(lines[start : end + 1]),
                start=start + 1,
                end=end + 1,
            )
        )
    return matches


def grep_search(
    files: Sequence[FileEntry],
    pattern: str,
    *,
    context: int = 2,
    case_sensitive: bool = False,
    raw: bool = False,
    frontmatter_fields: Sequence[str] = USEFUL_FRONTMATTER,
) -> List[GrepResult]:
    """Search ``files`` for ``pattern``. An invalid pattern yields no results."""
    try:
        regex = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as exc:
        LOGGER.error("Invalid regex pattern '%s': %s", pattern, exc)
        return []

    results: List[GrepResult] = []
    for entry in files:
        try:
            parsed = parse_markdown_file(entry.path)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Skipping %s: %s", entry.relative_path, exc)
            continue

        matches = grep_lines(parsed.body.split("\n"), regex, context=context, raw=raw)
        if not matches:
            continue
        frontmatter = parsed.frontmatter
        if not raw:
            frontmatter = filter_frontmatter(frontmatter, frontmatter_fields)
        results.append(GrepResult(file=entry.relative_path, matches=matches, frontmatter=frontmatter))
    return results
