"""Tests for core data models."""

from __future__ import annotations

import pytest

from mdfinder.models import DocumentRecord, IndexMetadata


class TestDocumentRecord:
    """Test DocumentRecord serialisation."""

    def test_defaults(self) -> None:
        record = DocumentRecord(path="/a.md", file="a.md", title="A", body="text")

        assert record.description == ""
        assert record.tags == ""
        assert record.frontmatter == {}
        assert record.fingerprint == ""

    def test_from_dict_tolerates_missing_fields(self) -> None:
        """Older cache entries without optional keys still load."""
        record = DocumentRecord.from_dict({"path": "/a.md", "description": None})

        assert record.file == "/a.md"
        assert record.title == ""
        assert record.description == ""
        assert record.mtime == 0.0

    def test_to_dict_keeps_frontmatter(self) -> None:
        record = DocumentRecord(
            path="/a.md", file="a.md", title="A", body="", frontmatter={"author": "x"}
        )
        assert DocumentRecord.from_dict(record.to_dict()) == record


class TestIndexMetadata:
    """Test IndexMetadata wire format."""

    def test_to_dict_uses_camel_case_count(self) -> None:
        meta = IndexMetadata(version=6, timestamp=1.5, file_count=2, hashes={"/a.md": "abc"})
        data = meta.to_dict()

        assert data == {"version": 6, "timestamp": 1.5, "fileCount": 2, "hashes": {"/a.md": "abc"}}

    def test_from_dict_requires_file_count(self) -> None:
        with pytest.raises(KeyError):
            IndexMetadata.from_dict({"version": 6})
