"""Shared fixtures for mdfinder tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

import pytest

from mdfinder.models import FileEntry
from mdfinder.utils.files import find_markdown_files

GUIDE = """---
title: Test Document
description: Overview of the testing workflow
tags: [testing, guide]
author: someone
---
# Test Document

This guide explains how the testing workflow is organised.

## Setup

Install the tools before running anything.
"""

NOTES = """# Release notes

Version two adds incremental indexing.

```python
def rebuild():
    return "incremental"
```
"""

API = """# API reference

The search endpoint accepts a simple query string.
Results are ranked by relevance.
"""


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def touch_later(path: Path, seconds: float = 5.0) -> None:
    """Move a file's mtime forward so its fingerprint changes."""
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + seconds))


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """Three Markdown files plus one file that is not Markdown."""
    docs = tmp_path / "docs"
    write_file(docs / "guide.md", GUIDE)
    write_file(docs / "notes.md", NOTES)
    write_file(docs / "reference" / "api.md", API)
    write_file(docs / "ignored.txt", "Test Document")
    return docs


@pytest.fixture
def corpus_files(corpus: Path) -> List[FileEntry]:
    return find_markdown_files([corpus])
