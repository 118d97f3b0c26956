"""Tests for paragraph and code-block aware context extraction."""

from __future__ import annotations

from mdfinder.utils.context import (
    ELLIPSIS,
    char_offset_to_line,
    extend_to_next_paragraph,
    extract_paragraph_context,
    extract_smart_context,
    extract_title_preview,
)


class TestCharOffsetToLine:
    def test_offsets(self) -> None:
        text = "ab\ncd\nef"
        assert char_offset_to_line(text, 0) == 0
        assert char_offset_to_line(text, 4) == 1
        assert char_offset_to_line(text, 7) == 2

    def test_offset_past_end_clamps(self) -> None:
        assert char_offset_to_line("ab\ncd", 100) == 1


class TestExtractSmartContext:
    """Test extract_smart_context."""

    def test_empty_lines(self) -> None:
        assert extract_smart_context([], 5) == (0, 0)

    def test_paragraph_bounded_by_blank_lines(self) -> None:
        lines = ["intro", "", "first", "second", "third", "", "after"]
        assert extract_smart_context(lines, 3) == (2, 4)

    def test_paragraph_bounded_by_headings(self) -> None:
        lines = ["# Title", "body one", "body two", "## Next", "other"]
        assert extract_smart_context(lines, 1) == (1, 2)

    def test_index_out_of_range_is_clamped(self) -> None:
        lines = ["a", "b"]
        assert extract_smart_context(lines, 10) == (0, 1)

    def test_code_block_returned_whole(self) -> None:
        lines = ["text", "", "```python", "x = 1", "", "y = 2", "```", "", "tail"]
        assert extract_smart_context(lines, 5) == (2, 6)

    def test_unterminated_code_block_runs_to_end(self) -> None:
        lines = ["text", "```", "x = 1", "", "y = 2"]
        assert extract_smart_context(lines, 2) == (1, 4)

    def test_short_snippet_extends(self) -> None:
        lines = ["tiny", "", "next paragraph", "continues", "", "last"]
        assert extract_smart_context(lines, 0) == (0, 0)
        assert extract_smart_context(lines, 0, extend_short=True) == (0, 3)


class TestExtendToNextParagraph:
    def test_stops_at_heading(self) -> None:
        lines = ["a", "", "## Heading", "b"]
        assert extend_to_next_paragraph(lines, 0, 0) == (0, 0)


class TestExtractParagraphContext:
    """Test extract_paragraph_context."""

    def test_short_body(self) -> None:
        body = "alpha beta\ngamma"
        assert extract_paragraph_context(body, 6) == "alpha beta\ngamma"

    def test_long_paragraph_trimmed_with_markers(self) -> None:
        lines = [f"line {i}" for i in range(60)]
        body = "\n".join(lines)
        offset = body.index("line 30")

        snippet = extract_paragraph_context(body, offset, max_lines=9)
        parts = snippet.split("\n")

        assert parts[0] == ELLIPSIS
        assert parts[-1] == ELLIPSIS
        assert "line 30" in parts
        assert len(parts) == 9 + 2


class TestExtractTitlePreview:
    def test_heading_plus_paragraph(self) -> None:
        body = "# Guide\n\nFirst paragraph.\nStill first.\n\nSecond paragraph."
        assert extract_title_preview(body, "Guide") == "# Guide\n\nFirst paragraph.\nStill first."

    def test_falls_back_to_first_paragraph(self) -> None:
        body = "Opening words here.\n\nLater text."
        assert extract_title_preview(body, "Missing").startswith("Opening words here.")
