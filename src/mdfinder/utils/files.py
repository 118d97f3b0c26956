"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, Sequence

import pathspec

from mdfinder.models import FileEntry

LOGGER = logging.getLogger(__name__)

MISSING = "missing"
FINGERPRINT_LENGTH = 12
DEFAULT_EXTENSIONS = (".md", ".markdown")


def compute_fingerprint(path: str | Path) -> str:
    """Hash a file's path and modification time without reading its content.

    Returns ``MISSING`` when the file cannot be stat'ed so callers treat it as
    absent or changed.
    """
    try:
        stat = os.stat(path)
    except OSError:
        return MISSING
    mtime_ms = stat.st_mtime_ns / 1_000_000
    digest = hashlib.md5(f"{path}:{mtime_ms}".encode("utf-8"))
    return digest.hexdigest()[:FINGERPRINT_LENGTH]


def compute_fingerprints(files: Iterable[FileEntry]) -> Dict[str, str]:
    """Compute fingerprints for all files keyed by absolute path."""
    return {entry.path: compute_fingerprint(entry.path) for entry in files}


def get_mtime(path: str | Path) -> float | None:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


def build_exclude_spec(patterns: Iterable[str]) -> pathspec.PathSpec:
    """Compile exclusion globs with gitignore semantics.

    A pattern without a slash matches at any depth; ``dir/**`` matches
    everything below ``dir``.
    """
    normalized = [pattern.replace("\\", "/") for pattern in patterns]
    return pathspec.PathSpec.from_lines("gitwildmatch", normalized)


def match_glob(path: str, pattern: str) -> bool:
    return build_exclude_spec([pattern]).match_file(path.replace("\\", "/"))


def should_exclude(relative_path: str, patterns: Sequence[str] | pathspec.PathSpec) -> bool:
    spec = patterns if isinstance(patterns, pathspec.PathSpec) else build_exclude_spec(patterns)
    return spec.match_file(relative_path)


def iter_markdown_files(
    root: Path,
    *,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude: Sequence[str] | pathspec.PathSpec = (),
    _base: Path | None = None,
) -> Iterator[FileEntry]:
    """Yield Markdown files under ``root``, descending into directories.

    Raises ``OSError`` when ``root`` itself cannot be listed; unreadable nested
    directories are skipped.
    """
    base = _base or root
    spec = exclude if isinstance(exclude, pathspec.PathSpec) else build_exclude_spec(exclude)
    try:
        children = sorted(root.iterdir())
    except OSError:
        if _base is None:
            raise
        LOGGER.debug("Skipping unreadable directory %s", root)
        return

    for child in children:
        relative = child.relative_to(base).as_posix()
        if spec.match_file(relative):
            continue
        try:
            is_dir = child.is_dir()
        except OSError:
            continue
        if is_dir:
            if spec.match_file(relative + "/"):
                continue
            yield from iter_markdown_files(
                child, extensions=extensions, exclude=spec, _base=base
            )
        elif child.name.endswith(tuple(extensions)):
            yield FileEntry(path=str(child.absolute()), relative_path=relative)


def find_markdown_files(
    directories: Sequence[Path],
    *,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude: Sequence[str] = (),
) -> list[FileEntry]:
    """Collect Markdown files from several roots.

    With more than one root, relative paths are prefixed by the root's name so
    display paths stay unambiguous.
    """
    files: list[FileEntry] = []
    prefix = len(directories) > 1
    spec = build_exclude_spec(exclude)
    for directory in directories:
        directory = Path(directory)
        try:
            found = list(
                iter_markdown_files(directory, extensions=extensions, exclude=spec)
            )
        except OSError as exc:
            LOGGER.error("Error reading directory '%s': %s", directory, exc)
            continue
        if prefix:
            name = directory.resolve().name
            found = [
                FileEntry(path=entry.path, relative_path=f"{name}/{entry.relative_path}")
                for entry in found
            ]
        files.extend(found)
    return files
