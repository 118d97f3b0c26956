"""Command line interface for mdfinder."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mdfinder.config import AppConfig, ConfigError, load_config
from mdfinder.index.grep import grep_search
from mdfinder.index.indexer import Indexer
from mdfinder.index.search import Searcher
from mdfinder.ingestion.markdown_loader import extract_headings, extract_section, parse_markdown_file
from mdfinder.models import FileEntry
from mdfinder.utils.files import find_markdown_files

console = Console()
app = typer.Typer(help="mdfinder - fuzzy and grep search for Markdown documents")

ConfigOption = typer.Option(None, "--config", help="Path to config file")
NoConfigOption = typer.Option(False, "--no-config", help="Ignore config files")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")
JsonOption = typer.Option(False, "--json", help="Print results as JSON")
ExcludeOption = typer.Option(None, "--exclude", "-e", help="Exclude glob pattern (repeatable)")
DirectoriesArgument = typer.Argument(None, help="Directories to search")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load(config_path: Optional[Path], no_config: bool) -> AppConfig:
    try:
        return load_config(config_path, use_file=not no_config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _collect_files(
    config: AppConfig, directories: Optional[List[Path]], exclude: Optional[List[str]]
) -> List[FileEntry]:
    roots = list(directories) if directories else config.resolve_directories()
    patterns = [*config.exclude, *(exclude or [])]
    return find_markdown_files(roots, extensions=config.extensions, exclude=patterns)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _one_line(text: str, width: int = 180) -> str:
    return text.replace("\n", " ")[:width]


@app.command()
def find(
    query: str = typer.Argument(..., help="Query: words are ANDed, 'term is exact, !term excludes"),
    directories: Optional[List[Path]] = DirectoriesArgument,
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum results"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Fixed previews, unfiltered frontmatter"),
    exclude: Optional[List[str]] = ExcludeOption,
    rebuild_index: bool = typer.Option(False, "--rebuild-index", help="Force an index rebuild"),
    as_json: bool = JsonOption,
    config_path: Optional[Path] = ConfigOption,
    no_config: bool = NoConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fuzzy search for relevant documents."""
    _setup_logging(verbose)
    config = _load(config_path, no_config)
    files = _collect_files(config, directories, exclude)
    searcher = Searcher.from_config(config)

    results = searcher.search(
        files, query, limit=limit or config.limit, raw=raw, rebuild_index=rebuild_index
    )
    if as_json:
        _echo_json([asdict(result) for result in results])
        return
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Title")
    table.add_column("Preview")
    for result in results:
        table.add_row(
            f"{result.score:.4f}",
            escape(result.file),
            escape(result.title),
            escape(_one_line(result.preview)),
        )
    console.print(table)
    console.print(f"Found {len(results)} relevant document(s)")


@app.command()
def grep(
    pattern: str = typer.Argument(..., help="Regular expression"),
    directories: Optional[List[Path]] = DirectoriesArgument,
    context: int = typer.Option(2, "--context", "-c", help="Context lines in raw mode"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", "-s"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Line-based context instead of paragraphs"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum files"),
    exclude: Optional[List[str]] = ExcludeOption,
    as_json: bool = JsonOption,
    config_path: Optional[Path] = ConfigOption,
    no_config: bool = NoConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Search for exact text patterns."""
    _setup_logging(verbose)
    config = _load(config_path, no_config)
    files = _collect_files(config, directories, exclude)
    results = grep_search(
        files,
        pattern,
        context=context,
        case_sensitive=case_sensitive,
        raw=raw,
        frontmatter_fields=config.frontmatter_fields,
    )
    shown = results[:limit] if limit else results

    if as_json:
        _echo_json([asdict(result) for result in shown])
        return
    for result in shown:
        console.print(f"[bold]{escape(result.file)}[/bold]")
        for match in result.matches:
            location = f"  line {match.line_number}"
            if match.heading_path:
                location += f" ({match.heading_path})"
            console.print(location, markup=False)
            for line in match.context.split("\n"):
                console.print(f"    {line}", markup=False)
    suffix = f" (showing {limit})" if limit and len(results) > limit else ""
    console.print(f"Found {len(results)} file(s) with matches{suffix}")


@app.command("list")
def list_files(
    directories: Optional[List[Path]] = DirectoriesArgument,
    count: bool = typer.Option(False, "--count", "-c", help="Only print the number of files"),
    exclude: Optional[List[str]] = ExcludeOption,
    config_path: Optional[Path] = ConfigOption,
    no_config: bool = NoConfigOption,
) -> None:
    """List Markdown files."""
    config = _load(config_path, no_config)
    files = _collect_files(config, directories, exclude)
    if count:
        typer.echo(len(files))
        return
    for entry in files:
        typer.echo(entry.relative_path)


@app.command()
def outline(
    paths: Optional[List[Path]] = typer.Argument(None, help="Files or directories"),
    depth: int = typer.Option(6, "--depth", "-d", min=1, max=6, help="Maximum heading depth"),
    as_json: bool = JsonOption,
    config_path: Optional[Path] = ConfigOption,
    no_config: bool = NoConfigOption,
) -> None:
    """Show the heading structure of documents."""
    config = _load(config_path, no_config)
    targets = [p for p in (paths or []) if p.is_file()]
    entries = [FileEntry(path=str(p), relative_path=str(p)) for p in targets]
    directories = [p for p in (paths or []) if not p.is_file()]
    if directories or not paths:
        entries.extend(_collect_files(config, directories or None, None))

    for entry in entries:
        try:
            body = parse_markdown_file(entry.path).body
        except (OSError, UnicodeDecodeError) as exc:
            console.print(f"[red]Error reading '{escape(entry.relative_path)}': {escape(str(exc))}[/red]")
            continue
        headings = [h for h in extract_headings(body.split("\n")) if h.level <= depth]
        if as_json:
            typer.echo(json.dumps({"file": entry.relative_path, "headings": [asdict(h) for h in headings]}))
            continue
        console.print(f"[bold]{escape(entry.relative_path)}[/bold]")
        for heading in headings:
            console.print(f"{'  ' * (heading.level - 1)}{'#' * heading.level} {heading.text}", markup=False)


@app.command()
def section(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file"),
    heading: str = typer.Argument(..., help='Heading text or path like "Setup > Install"'),
    as_json: bool = JsonOption,
) -> None:
    """Print the section under a heading."""
    body = parse_markdown_file(file).body
    lines = body.split("\n")
    content = extract_section(lines, extract_headings(lines), heading)
    if content is None:
        console.print(f"[yellow]Section not found: {escape(heading)}[/yellow]")
        raise typer.Exit(code=1)
    if as_json:
        _echo_json({"file": str(file), "heading": heading, "content": content})
        return
    typer.echo(content)


@app.command()
def index(
    action: str = typer.Argument("stats", help="stats, clear or rebuild"),
    directories: Optional[List[Path]] = DirectoriesArgument,
    exclude: Optional[List[str]] = ExcludeOption,
    as_json: bool = JsonOption,
    config_path: Optional[Path] = ConfigOption,
    no_config: bool = NoConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Inspect, clear or rebuild the persisted search index."""
    _setup_logging(verbose)
    config = _load(config_path, no_config)
    indexer = Indexer.from_config(config)

    if action == "clear":
        cleared = indexer.clear()
        console.print("Index cleared." if cleared else "[yellow]No index to clear.[/yellow]")
        return
    if action == "rebuild":
        files = _collect_files(config, directories, exclude)
        built = indexer.rebuild(files)
        root = escape(str(indexer.store.root))
        console.print(f"Indexed {len(built.documents)} document(s) into [bold]{root}[/bold]")
        return
    if action != "stats":
        raise typer.BadParameter(f"Unknown action '{action}'. Use stats, clear or rebuild.")

    stats = indexer.stats()
    if as_json:
        _echo_json(asdict(stats))
        return
    table = Table(show_header=False)
    for key, value in asdict(stats).items():
        table.add_row(key, escape(str(value)))
    console.print(table)
