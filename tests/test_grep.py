"""Tests for the grep engine."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

import pytest

from mdfinder.index.grep import grep_lines, grep_search
from mdfinder.models import FileEntry

from conftest import write_file

DOC = [
    "# Guide",
    "",
    "## Setup",
    "",
    "Install alpha first.",
    "Then install beta.",
    "",
    "### Notes",
    "",
    "Unrelated text.",
    "Install gamma last.",
]


class TestGrepLines:
    """Test grep_lines on in-memory lines."""

    def test_paragraph_reported_once(self) -> None:
        matches = grep_lines(DOC, re.compile("install", re.I))

        assert [m.line_number for m in matches] == [5, 11]
        assert matches[0].context == "Install alpha first.\nThen install beta."
        assert (matches[0].start, matches[0].end) == (5, 6)

    def test_heading_path(self) -> None:
        matches = grep_lines(DOC, re.compile("gamma"))

        assert matches[0].heading_path == "# Guide > ## Setup > ### Notes"

    def test_raw_mode_uses_line_window(self) -> None:
        matches = grep_lines(DOC, re.compile("alpha"), context=1, raw=True)

        assert matches[0].heading_path is None
        assert (matches[0].start, matches[0].end) == (4, 6)

    def test_windows_never_overlap(self) -> None:
        lines = [f"hit {i}" for i in range(12)]
        matches = grep_lines(lines, re.compile("hit"), context=2, raw=True)
        spans = [(m.start, m.end) for m in matches]

        for (_, first_end), (second_start, _) in zip(spans, spans[1:]):
            assert second_start > first_end
        assert spans[0] == (1, 3)

    def test_closed_interval_overlap(self) -> None:
        """Closed intervals: a window starting on the last line of another overlaps it."""
        lines = ["a", "x", "b", "c", "x", "d"]
        matches = grep_lines(lines, re.compile("x"), context=1, raw=True)

        assert [m.line_number for m in matches] == [2, 5]
        lines = ["a", "x", "x"]
        assert len(grep_lines(lines, re.compile("x"), context=1, raw=True)) == 1

    def test_match_in_code_block_returns_block(self) -> None:
        lines = ["text", "", "```", "value = 1", "", "needle()", "```"]
        matches = grep_lines(lines, re.compile("needle"))

        assert (matches[0].start, matches[0].end) == (3, 7)


class TestGrepSearch:
    """Test grep_search over files."""

    def test_finds_files(self, corpus_files: List[FileEntry]) -> None:
        results = grep_search(corpus_files, "incremental")

        assert [r.file for r in results] == ["notes.md"]
        assert len(results[0].matches) == 2

    def test_case_sensitivity(self, corpus_files: List[FileEntry]) -> None:
        assert grep_search(corpus_files, "RELEASE") != []
        assert grep_search(corpus_files, "RELEASE", case_sensitive=True) == []

    def test_frontmatter_filtered_unless_raw(self, corpus_files: List[FileEntry]) -> None:
        filtered = grep_search(corpus_files, "workflow")[0]
        raw = grep_search(corpus_files, "workflow", raw=True)[0]

        assert filtered.frontmatter == {
            "title": "Test Document",
            "description": "Overview of the testing workflow",
            "tags": ["testing", "guide"],
        }
        assert raw.frontmatter["author"] == "someone"

    def test_frontmatter_is_not_searched(self, corpus_files: List[FileEntry]) -> None:
        assert grep_search(corpus_files, "someone") == []

    def test_invalid_regex(
        self, corpus_files: List[FileEntry], caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.ERROR, logger="mdfinder.index.grep"):
            assert grep_search(corpus_files, "([unclosed") == []
        assert "Invalid regex" in caplog.text

    def test_missing_file_skipped(self, tmp_path: Path, corpus_files: List[FileEntry]) -> None:
        ghost = FileEntry(path=str(tmp_path / "gone.md"), relative_path="gone.md")
        results = grep_search([ghost] + corpus_files, "incremental")

        assert [r.file for r in results] == ["notes.md"]

    def test_undecodable_file_skipped(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.md"
        bad.write_bytes(b"\xff\xfe needle")
        good = write_file(tmp_path / "good.md", "needle")
        files = [
            FileEntry(path=str(bad), relative_path="bad.md"),
            FileEntry(path=str(good), relative_path="good.md"),
        ]

        assert [r.file for r in grep_search(files, "needle")] == ["good.md"]
