"""Markdown loading: frontmatter, headings and sections."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import yaml

from mdfinder.models import DocumentRecord, FileEntry, Heading

LOGGER = logging.getLogger(__name__)

USEFUL_FRONTMATTER = ("title", "description", "tags", "category", "summary", "keywords")

_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)
_HEADING = re.compile(r"^(#{1,6})\s+(.+)$")


@dataclass(slots=True)
class ParsedMarkdown:
    path: Path
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: str = ""
    full_content: str = ""


def _json_safe(value: Any) -> Any:
    """Coerce YAML scalars and keys to JSON types; dates become ISO strings."""
    if isinstance(value, dict):
        return {
            key if isinstance(key, str) else str(_json_safe(key)): _json_safe(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def split_frontmatter(content: str) -> tuple[Dict[str, Any], str]:
    """Split a leading YAML frontmatter block from the body.

    Malformed or non-mapping YAML yields an empty frontmatter and the body
    with the block removed. Keys are always strings and values JSON-safe.
    """
    match = _FRONTMATTER.match(content)
    if not match:
        return {}, content

    body = content[match.end() :]
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        LOGGER.debug("Ignoring malformed frontmatter: %s", exc)
        return {}, body
    if not isinstance(data, dict):
        return {}, body
    return _json_safe(data), body


def parse_markdown_file(path: str | Path) -> ParsedMarkdown:
    """Read a Markdown file and split its frontmatter from the body."""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    frontmatter, body = split_frontmatter(content)
    return ParsedMarkdown(path=path, frontmatter=frontmatter, body=body, full_content=content)


def filter_frontmatter(
    frontmatter: Dict[str, Any], fields: Iterable[str] = USEFUL_FRONTMATTER
) -> Dict[str, Any]:
    """Keep only the frontmatter keys worth showing in results."""
    return {key: frontmatter[key] for key in fields if key in frontmatter}


def extract_headings(lines: Sequence[str]) -> List[Heading]:
    headings: List[Heading] = []
    for index, line in enumerate(lines):
        match = _HEADING.match(line)
        if match:
            headings.append(
                Heading(level=len(match.group(1)), text=match.group(2).strip(), line=index)
            )
    return headings


def extract_first_heading(body: str) -> str | None:
    for line in body.split("\n"):
        match = _HEADING.match(line)
        if match:
            return match.group(2).strip()
    return None


def find_parent_heading(headings: Sequence[Heading], line_index: int) -> Heading | None:
    for heading in reversed(headings):
        if heading.line < line_index:
            return heading
    return None


def build_heading_path(headings: Sequence[Heading], line_index: int) -> str:
    """Breadcrumb such as ``# Guide > ## Setup`` for the given line.

    Walks backward from the line, keeping each heading whose level is strictly
    lower than the last one kept.
    """
    path: List[str] = []
    current_level = 7
    for heading in reversed(headings):
        if heading.line < line_index and heading.level < current_level:
            path.insert(0, f"{'#' * heading.level} {heading.text}")
            current_level = heading.level
    return " > ".join(path)


def extract_section(
    lines: Sequence[str], headings: Sequence[Heading], heading_path: str
) -> str | None:
    """Return the section under a heading, addressed by text or ``A > B`` path.

    The section runs until the next heading of the same or a higher level.
    """
    parts = [re.sub(r"^#+\s*", "", part.strip()) for part in heading_path.split(">")]
    target = parts[-1].lower()

    start = -1
    level = 0
    for heading in headings:
        if target in heading.text.lower():
            start, level = heading.line, heading.level
            break
    if start == -1:
        return None

    end = len(lines)
    for heading in headings:
        if heading.line > start and heading.level <= level:
            end = heading.line
            break
    return "\n".join(lines[start:end])


def _join_tags(tags: Any) -> str:
    if isinstance(tags, (list, tuple)):
        return " ".join(str(tag) for tag in tags)
    return str(tags) if tags else ""


def build_document(entry: FileEntry, fingerprint: str, mtime: float = 0.0) -> DocumentRecord:
    """Parse ``entry`` into a :class:`DocumentRecord`.

    Raises ``OSError`` or ``UnicodeDecodeError`` when the file cannot be read.
    """
    parsed = parse_markdown_file(entry.path)
    frontmatter = parsed.frontmatter
    title = frontmatter.get("title") or extract_first_heading(parsed.body) or entry.relative_path
    return DocumentRecord(
        path=entry.path,
        file=entry.relative_path,
        title=str(title),
        body=parsed.body,
        description=str(frontmatter.get("description") or ""),
        tags=_join_tags(frontmatter.get("tags")),
        frontmatter=frontmatter,
        fingerprint=fingerprint,
        mtime=mtime,
    )
