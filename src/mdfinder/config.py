"""Application configuration defaults and config file loading."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (".mdfinderrc", ".mdfinderrc.json", "mdfinder.config.json")
DEFAULT_INDEX_DIR = ".mdfinder-index"
DEFAULT_DOCUMENT_CACHE = ".mdfinder-docs.json"
LEGACY_CACHE_FILES = (
    ".mdfinder-index.json",
    ".mdfinder-index-meta.json",
    ".mdfinder-index.db",
)


class MdFinderError(Exception):
    """Base class for mdfinder errors."""


class ConfigError(MdFinderError):
    """Raised when an explicitly requested config file cannot be used."""


def _default_weights() -> Dict[str, float]:
    return {"title": 2.0, "description": 1.5, "tags": 1.5, "body": 1.0}


@dataclass(slots=True)
class PreviewConfig:
    top_results: int = 600
    mid_results: int = 300
    other_results: int = 150
    max_lines: int = 20

    def length_for_rank(self, rank: int) -> int:
        if rank < 3:
            return self.top_results
        if rank < 7:
            return self.mid_results
        return self.other_results


@dataclass(slots=True)
class AppConfig:
    directories: List[str] = field(default_factory=lambda: ["."])
    exclude: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=lambda: [".md", ".markdown"])
    limit: int = 10
    weights: Dict[str, float] = field(default_factory=_default_weights)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    frontmatter_fields: List[str] = field(
        default_factory=lambda: ["title", "description", "tags", "category", "summary", "keywords"]
    )
    index_enabled: bool = True
    index_path: Path = Path(DEFAULT_INDEX_DIR)
    document_cache_path: Path = Path(DEFAULT_DOCUMENT_CACHE)
    cache_ttl: float = 600.0
    staleness_policy: str = "fingerprint"
    progress_threshold: int = 100
    base_dir: Path | None = None
    source: str = "defaults"

    def _resolve(self, path: Path, base_dir: Path | None) -> Path:
        base = base_dir if base_dir is not None else self.base_dir
        if Path(path).is_absolute() or base is None:
            return Path(path)
        return Path(base) / path

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        return self._resolve(self.index_path, base_dir)

    def resolve_document_cache_path(self, base_dir: Path | None = None) -> Path:
        return self._resolve(self.document_cache_path, base_dir)

    def resolve_directories(self, base_dir: Path | None = None) -> List[Path]:
        return [self._resolve(Path(d), base_dir) for d in self.directories]


class PreviewSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    top_results: Optional[int] = Field(None, alias="topResults", ge=1)
    mid_results: Optional[int] = Field(None, alias="midResults", ge=1)
    other_results: Optional[int] = Field(None, alias="otherResults", ge=1)
    max_lines: Optional[int] = Field(None, alias="maxLines", ge=1)


class IndexSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    enabled: Optional[bool] = None
    path: Optional[str] = None
    document_cache: Optional[str] = Field(None, alias="documentCache")
    ttl: Optional[float] = Field(None, gt=0)
    staleness: Optional[str] = Field(None, pattern="^(fingerprint|mtime)$")
    progress_threshold: Optional[int] = Field(None, alias="progressThreshold", ge=0)


class ConfigFile(BaseModel):
    """Schema of a JSON config file. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    directories: Optional[List[str]] = Field(None, alias="documentDirectories")
    exclude: Optional[List[str]] = None
    extensions: Optional[List[str]] = None
    limit: Optional[int] = Field(None, ge=1)
    weights: Optional[Dict[str, float]] = None
    preview: Optional[PreviewSettings] = None
    frontmatter_fields: Optional[List[str]] = Field(None, alias="frontmatterFields")
    index: Optional[IndexSettings] = None


def find_config_file(start_dir: Path | None = None, home: Path | None = None) -> Path | None:
    """Walk up from ``start_dir`` looking for a config file, then try ``home``."""
    current = Path(start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    home = home if home is not None else Path.home()
    for name in CONFIG_FILE_NAMES:
        candidate = home / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> ConfigFile | None:
    """Parse and validate a config file; errors are logged and give ``None``."""
    try:
        raw: Any = json.loads(Path(path).read_text(encoding="utf-8"))
        return ConfigFile.model_validate(raw)
    except (OSError, ValueError, ValidationError) as exc:
        LOGGER.error("Error loading config file '%s': %s", path, exc)
        return None


def merge_config(base: AppConfig, overrides: ConfigFile) -> AppConfig:
    """Return ``base`` with every value set in ``overrides`` applied."""
    config = AppConfig(
        directories=list(overrides.directories or base.directories),
        exclude=list(overrides.exclude if overrides.exclude is not None else base.exclude),
        extensions=list(overrides.extensions or base.extensions),
        limit=overrides.limit or base.limit,
        weights={**base.weights, **(overrides.weights or {})},
        preview=PreviewConfig(
            top_results=base.preview.top_results,
            mid_results=base.preview.mid_results,
            other_results=base.preview.other_results,
            max_lines=base.preview.max_lines,
        ),
        frontmatter_fields=list(overrides.frontmatter_fields or base.frontmatter_fields),
        index_enabled=base.index_enabled,
        index_path=base.index_path,
        document_cache_path=base.document_cache_path,
        cache_ttl=base.cache_ttl,
        staleness_policy=base.staleness_policy,
        progress_threshold=base.progress_threshold,
        base_dir=base.base_dir,
        source=base.source,
    )
    if overrides.preview is not None:
        for name, value in overrides.preview.model_dump(exclude_none=True).items():
            setattr(config.preview, name, value)
    index = overrides.index
    if index is not None:
        if index.enabled is not None:
            config.index_enabled = index.enabled
        if index.path:
            config.index_path = Path(index.path)
        if index.document_cache:
            config.document_cache_path = Path(index.document_cache)
        if index.ttl is not None:
            config.cache_ttl = index.ttl
        if index.staleness:
            config.staleness_policy = index.staleness
        if index.progress_threshold is not None:
            config.progress_threshold = index.progress_threshold
    return config


def load_config(
    config_path: Path | None = None,
    *,
    use_file: bool = True,
    start_dir: Path | None = None,
) -> AppConfig:
    """Build the effective configuration.

    An explicit ``config_path`` must exist; otherwise the nearest config file
    found from ``start_dir`` upward (then the home directory) is used. Relative
    paths in the result resolve against the config file's directory, or the
    start directory when no file is used.
    """
    base_dir = Path(start_dir or Path.cwd())
    defaults = AppConfig(base_dir=base_dir)
    if not use_file:
        return defaults

    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = find_config_file(base_dir)
        if path is None:
            return defaults

    overrides = load_config_file(path)
    if overrides is None:
        return defaults

    config = merge_config(defaults, overrides)
    config.base_dir = path.resolve().parent
    config.source = str(path)
    return config
