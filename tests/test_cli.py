"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from mdfinder.cli import _setup_logging, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an isolated working directory and home."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return work


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("mdfinder.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("mdfinder.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestFindCommand:
    """Tests for the find command."""

    def test_find_json(self, corpus: Path) -> None:
        result = runner.invoke(app, ["find", "'Test Document", str(corpus), "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [item["file"] for item in payload] == ["guide.md"]
        assert payload[0]["title"] == "Test Document"

    def test_find_table(self, corpus: Path) -> None:
        result = runner.invoke(app, ["find", "incremental", str(corpus)])

        assert result.exit_code == 0
        assert "notes.md" in result.stdout
        assert "Found 1 relevant document(s)" in result.stdout

    def test_find_table_keeps_brackets(self, workspace: Path) -> None:
        """Bracketed text in titles and previews is shown literally."""
        docs = workspace / "docs"
        docs.mkdir()
        (docs / "widget.md").write_text(
            '---\ntitle: "[Draft] Widget"\n---\nSee [link] for the widget.\n'
        )

        result = runner.invoke(app, ["find", "widget", str(docs)])

        assert result.exit_code == 0
        assert "[Draft]" in result.stdout
        assert "[link]" in result.stdout

    def test_find_no_matches(self, corpus: Path) -> None:
        result = runner.invoke(app, ["find", "xyz-nonexistent", str(corpus)])

        assert result.exit_code == 0
        assert "No matches found" in result.stdout

    def test_find_writes_index_next_to_cwd(self, corpus: Path, workspace: Path) -> None:
        runner.invoke(app, ["find", "guide", str(corpus)])
        assert (workspace / ".mdfinder-index" / "meta.json").exists()

    def test_missing_config_file(self, corpus: Path) -> None:
        result = runner.invoke(app, ["find", "guide", str(corpus), "--config", "missing.json"])
        assert result.exit_code == 2

    def test_config_file_disables_index(self, corpus: Path, workspace: Path) -> None:
        (workspace / ".mdfinderrc").write_text(json.dumps({"index": {"enabled": False}}))

        result = runner.invoke(app, ["find", "guide", str(corpus), "--json"])

        assert result.exit_code == 0
        assert not (workspace / ".mdfinder-index").exists()


class TestGrepCommand:
    """Tests for the grep command."""

    def test_grep_json(self, corpus: Path) -> None:
        result = runner.invoke(app, ["grep", "incremental", str(corpus), "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [item["file"] for item in payload] == ["notes.md"]
        assert payload[0]["matches"][0]["line_number"] == 3

    def test_grep_text_output(self, corpus: Path) -> None:
        result = runner.invoke(app, ["grep", "tools", str(corpus)])

        assert result.exit_code == 0
        assert "guide.md" in result.stdout
        assert "# Test Document > ## Setup" in result.stdout

    def test_grep_keeps_brackets_in_file_names(self, workspace: Path) -> None:
        docs = workspace / "docs"
        docs.mkdir()
        (docs / "notes-[wip].md").write_text("needle\n")

        result = runner.invoke(app, ["grep", "needle", str(docs)])

        assert result.exit_code == 0
        assert "notes-[wip].md" in result.stdout

    def test_grep_invalid_regex(self, corpus: Path) -> None:
        result = runner.invoke(app, ["grep", "([bad", str(corpus), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == []


class TestListCommand:
    def test_list(self, corpus: Path) -> None:
        result = runner.invoke(app, ["list", str(corpus)])

        assert result.exit_code == 0
        assert result.stdout.split() == ["guide.md", "notes.md", "reference/api.md"]

    def test_list_count_with_exclude(self, corpus: Path) -> None:
        result = runner.invoke(app, ["list", str(corpus), "--count", "--exclude", "reference/**"])
        assert result.stdout.strip() == "2"


class TestOutlineAndSection:
    """Tests for outline and section commands."""

    def test_outline(self, corpus: Path) -> None:
        result = runner.invoke(app, ["outline", str(corpus / "guide.md")])

        assert result.exit_code == 0
        assert "# Test Document" in result.stdout
        assert "  ## Setup" in result.stdout

    def test_outline_json_depth(self, corpus: Path) -> None:
        result = runner.invoke(app, ["outline", str(corpus / "guide.md"), "--json", "--depth", "1"])

        payload = json.loads(result.stdout)
        assert [h["text"] for h in payload["headings"]] == ["Test Document"]

    def test_section(self, corpus: Path) -> None:
        result = runner.invoke(app, ["section", str(corpus / "guide.md"), "Setup"])

        assert result.exit_code == 0
        assert result.stdout.startswith("## Setup")
        assert "Install the tools" in result.stdout

    def test_section_missing(self, corpus: Path) -> None:
        result = runner.invoke(app, ["section", str(corpus / "guide.md"), "Nowhere"])
        assert result.exit_code == 1


class TestIndexCommand:
    """Tests for the index command."""

    def test_rebuild_stats_clear(self, corpus: Path, workspace: Path) -> None:
        rebuilt = runner.invoke(app, ["index", "rebuild", str(corpus)])
        assert rebuilt.exit_code == 0
        assert "Indexed 3 document(s)" in rebuilt.stdout

        stats = runner.invoke(app, ["index", "stats", "--json"])
        payload = json.loads(stats.stdout)
        assert payload["file_count"] == 3
        assert payload["index_exists"] is True

        cleared = runner.invoke(app, ["index", "clear"])
        assert "Index cleared." in cleared.stdout
        assert not (workspace / ".mdfinder-index").exists()

    def test_unknown_action(self) -> None:
        result = runner.invoke(app, ["index", "explode"])
        assert result.exit_code == 2
