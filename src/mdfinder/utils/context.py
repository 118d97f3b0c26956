"""Paragraph and code-block aware context windows around matches.

Shared by fuzzy previews and grep results so both modes cut snippets at the
same boundaries.
"""

from __future__ import annotations

import re
from typing import Sequence, Tuple

MIN_PREVIEW_LENGTH = 80
MIN_PREVIEW_LINES = 3
DEFAULT_MAX_LINES = 20
ELLIPSIS = "..."

FENCE = "```"
_HEADING_LINE = re.compile(r"^#{1,6}\s")
_HEADING_TEXT = re.compile(r"^#{1,6}\s+(.+)$")


def _is_boundary(line: str) -> bool:
    return line.strip() == "" or bool(_HEADING_LINE.match(line))


def char_offset_to_line(text: str, offset: int) -> int:
    """Convert a character offset into a 0-based line index."""
    consumed = 0
    lines = text.split("\n")
    for number, line in enumerate(lines):
        if consumed + len(line) >= offset:
            return number
        consumed += len(line) + 1
    return len(lines) - 1


def extend_to_next_paragraph(lines: Sequence[str], start: int, end: int) -> Tuple[int, int]:
    """Grow ``end`` through the following paragraph, stopping at headings and fences."""
    new_end = end
    in_paragraph = False
    for index in range(end + 1, len(lines)):
        line = lines[index]
        if _HEADING_LINE.match(line) or line.startswith(FENCE):
            break
        if line.strip() == "":
            if in_paragraph:
                break
            continue
        in_paragraph = True
        new_end = index
    return start, new_end


def extract_smart_context(
    lines: Sequence[str],
    match_index: int,
    *,
    extend_short: bool = False,
    min_length: int = MIN_PREVIEW_LENGTH,
    min_lines: int = MIN_PREVIEW_LINES,
) -> Tuple[int, int]:
    """Return inclusive ``(start, end)`` line indices of the block around a match.

    A match inside a fenced code block yields the whole block; an unterminated
    block runs to the last line. Otherwise the paragraph is bounded by blank
    lines and headings. With ``extend_short`` a snippet under ``min_length``
    characters or ``min_lines`` lines also takes in the next paragraph.
    """
    if not lines:
        return 0, 0
    match_index = max(0, min(match_index, len(lines) - 1))
    start = end = match_index

    in_code_block = False
    block_start = -1
    for index in range(match_index + 1):
        if lines[index].startswith(FENCE):
            in_code_block = not in_code_block
            if in_code_block:
                block_start = index

    if in_code_block:
        start = block_start
        end = len(lines) - 1
        for index in range(match_index + 1, len(lines)):
            if lines[index].startswith(FENCE):
                end = index
                break
    else:
        for index in range(match_index - 1, -1, -1):
            if _is_boundary(lines[index]):
                break
            start = index
        for index in range(match_index + 1, len(lines)):
            if _is_boundary(lines[index]):
                break
            end = index

    if extend_short:
        snippet = lines[start : end + 1]
        if len("\n".join(snippet)) < min_length or len(snippet) < min_lines:
            start, end = extend_to_next_paragraph(lines, start, end)

    return start, end


def extract_paragraph_context(body: str, offset: int, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """Snippet around ``offset``, trimmed to ``max_lines`` with ``...`` markers."""
    lines = body.split("\n")
    match_line = char_offset_to_line(body, offset)
    start, end = extract_smart_context(
        lines,
        match_line,
        extend_short=True,
        min_length=MIN_PREVIEW_LENGTH,
        min_lines=MIN_PREVIEW_LINES,
    )
    context = lines[start : end + 1]

    if len(context) <= max_lines:
        return "\n".join(context).strip()

    match_in_context = match_line - start
    before = max_lines // 3
    after = max_lines - before - 1

    keep_start = max(0, match_in_context - before)
    keep_end = min(len(context), match_in_context + after + 1)
    if keep_start == 0:
        keep_end = min(len(context), max_lines)
    elif keep_end == len(context):
        keep_start = max(0, len(context) - max_lines)

    snippet = "\n".join(context[keep_start:keep_end])
    if keep_start > 0:
        snippet = f"{ELLIPSIS}\n{snippet}"
    if keep_end < len(context):
        snippet = f"{snippet}\n{ELLIPSIS}"
    return snippet.strip()


def extract_title_preview(body: str, title: str, max_lines: int = 10) -> str:
    """Heading line matching ``title`` plus the paragraph that follows it.

    Falls back to the first paragraph of the body when no heading carries the
    title.
    """
    lines = body.split("\n")
    title_line = -1
    for index, line in enumerate(lines):
        match = _HEADING_TEXT.match(line)
        if match and match.group(1).strip() == title:
            title_line = index
            break

    if title_line == -1:
        return extract_paragraph_context(body, 0, max_lines)

    end = title_line
    found_content = False
    for index in range(title_line + 1, len(lines)):
        if end - title_line >= max_lines:
            break
        line = lines[index]
        if _HEADING_LINE.match(line) or line.startswith(FENCE):
            break
        if line.strip() == "":
            if found_content:
                break
            continue
        found_content = True
        end = index

    return "\n".join(lines[title_line : end + 1]).strip()
