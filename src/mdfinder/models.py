"""Core mdfinder data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(slots=True)
class FileEntry:
    """A discovered document: absolute path plus the path shown to users."""

    path: str
    relative_path: str


@dataclass(slots=True)
class DocumentRecord:
    """Parsed document as held by the document cache and the text index."""

    path: str
    file: str
    title: str
    body: str
    description: str = ""
    tags: str = ""
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    fingerprint: str = ""
    mtime: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "file": self.file,
            "title": self.title,
            "body": self.body,
            "description": self.description,
            "tags": self.tags,
            "frontmatter": self.frontmatter,
            "fingerprint": self.fingerprint,
            "mtime": self.mtime,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentRecord":
        return cls(
            path=data["path"],
            file=data.get("file", data["path"]),
            title=data.get("title", ""),
            body=data.get("body", ""),
            description=data.get("description") or "",
            tags=data.get("tags") or "",
            frontmatter=data.get("frontmatter") or {},
            fingerprint=data.get("fingerprint", ""),
            mtime=float(data.get("mtime", 0.0)),
        )


@dataclass(slots=True)
class IndexMetadata:
    """Metadata describing a persisted index at build time."""

    version: int
    timestamp: float
    file_count: int
    hashes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "fileCount": self.file_count,
            "hashes": self.hashes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexMetadata":
        return cls(
            version=int(data["version"]),
            timestamp=float(data.get("timestamp", 0.0)),
            file_count=int(data["fileCount"]),
            hashes=dict(data.get("hashes") or {}),
        )


@dataclass(slots=True)
class RankedResult:
    """Scored search hit. Lower scores are more relevant."""

    file: str
    path: str
    title: str
    score: float
    matched_fields: Tuple[str, ...]
    preview: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Heading:
    level: int
    text: str
    line: int


@dataclass(slots=True)
class GrepMatch:
    """A single grep hit with its context window (1-based line numbers)."""

    line_number: int
    line: str
    heading_path: str | None
    context: str
    start: int
    end: int


@dataclass(slots=True)
class GrepResult:
    file: str
    matches: List[GrepMatch]
    frontmatter: Dict[str, Any] = field(default_factory=dict)
