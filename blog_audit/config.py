"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- SiteConfig: Where the Jekyll source lives and which files count as Markdown
- FrontMatterConfig: Required keys per document kind, known layouts
- LinksConfig: Internal/external link checking and HTTP probing settings
- FencesConfig: Code fence language and syntax checks
- CacheConfig: External link cache directory and TTL
- OutputConfig: Report format, destination and failure threshold
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container (plus per-rule severity overrides)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

import yaml

from .errors import ConfigError


CHIRPY_LAYOUTS = [
    "default",
    "home",
    "page",
    "post",
    "archives",
    "categories",
    "category",
    "tags",
    "tag",
    "compress",
]


@dataclass
class SiteConfig:
    """Configuration for locating the Jekyll source tree.

    Attributes:
        source: Sub-directory of the site root holding the Jekyll source
        posts_dir: Directory holding dated posts
        markdown_ext: Comma-separated Markdown extensions (Jekyll's markdown_ext)
        include_drafts: Whether documents in _drafts are audited too
    """

    source: str = "."
    posts_dir: str = "_posts"
    markdown_ext: str = "markdown,mkdown,mkdn,mkd,md"
    include_drafts: bool = False


@dataclass
class FrontMatterConfig:
    """Configuration for front-matter checks.

    Attributes:
        required: Mapping of document kind ("post", "page", or a collection
                  name) to the keys that must be present and non-empty
        known_layouts: Layout names accepted in addition to files in _layouts/
        check_filename_date: Compare a post's date key with its filename date
        max_title_length: Warn when a title is longer than this (None disables)
    """

    required: dict[str, list[str]] = field(
        default_factory=lambda: {
            "post": ["title", "date", "categories", "tags"],
            "page": ["title"],
        }
    )
    known_layouts: list[str] = field(default_factory=lambda: list(CHIRPY_LAYOUTS))
    check_filename_date: bool = True
    max_title_length: int | None = None


@dataclass
class LinksConfig:
    """Configuration for link checking.

    Attributes:
        external: Whether http(s) links are checked over the network
        check_anchors: Whether #fragments must match a heading in the target
        enforce_https: Report plain http:// links
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        concurrency: Maximum number of in-flight HTTP requests
        user_agent: HTTP User-Agent header string
        ignore_urls: Regular expressions; matching URLs are never checked
        trust_env: Whether to respect system proxy settings
    """

    external: bool = True
    check_anchors: bool = True
    enforce_https: bool = True
    timeout_seconds: float = 10.0
    retries: int = 1
    concurrency: int = 8
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    ignore_urls: list[str] = field(default_factory=list)
    trust_env: bool = True


@dataclass
class FencesConfig:
    """Configuration for code fence checks.

    Attributes:
        require_language: Report fences without a language tag
        syntax_check: Parse fence content for languages with a checker
        extra_languages: Additional language tags to accept as known
    """

    require_language: bool = True
    syntax_check: bool = True
    extra_languages: list[str] = field(default_factory=list)


@dataclass
class CacheConfig:
    """Configuration for the external link cache.

    Attributes:
        enabled: Whether to read from/write to the link cache
        dir: Cache directory, relative to the site root unless absolute
        ttl_days: Optional time-to-live for cache entries in days
    """

    enabled: bool = True
    dir: str = ".blog-audit-cache"
    ttl_days: int | None = 7


@dataclass
class OutputConfig:
    """Configuration for report output.

    Attributes:
        format: "text", "json", "markdown" or "html"
        path: Report destination; None prints to stdout (html defaults to a file)
        fail_on: Lowest severity that makes the run fail ("error", "warning", "never")
    """

    format: str = "text"
    path: str | None = None
    fail_on: str = "error"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file (written into the cache directory)
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "audit.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    site: SiteConfig = field(default_factory=SiteConfig)
    front_matter: FrontMatterConfig = field(default_factory=FrontMatterConfig)
    links: LinksConfig = field(default_factory=LinksConfig)
    fences: FencesConfig = field(default_factory=FencesConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rules: dict[str, str] = field(default_factory=dict)


DEFAULT_CONFIG = AppConfig()

OUTPUT_FORMATS = ("text", "json", "markdown", "html")
FAIL_LEVELS = ("error", "warning", "never")
RULE_LEVELS = ("error", "warning", "info", "off")


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return _fromdict(_asdict(DEFAULT_CONFIG))

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    cfg = _merge_config(DEFAULT_CONFIG, raw)
    validate_config(cfg)
    return cfg


def validate_config(cfg: AppConfig) -> None:
    """Reject values that the rest of the tool cannot act on."""
    if cfg.output.format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {cfg.output.format!r}"
        )
    if cfg.output.fail_on not in FAIL_LEVELS:
        raise ConfigError(
            f"output.fail_on must be one of {', '.join(FAIL_LEVELS)}, got {cfg.output.fail_on!r}"
        )
    if cfg.links.concurrency < 1:
        raise ConfigError("links.concurrency must be at least 1")
    if cfg.links.retries < 0:
        raise ConfigError("links.retries must not be negative")
    for rule, level in cfg.rules.items():
        if str(level).lower() not in RULE_LEVELS:
            raise ConfigError(
                f"rules.{rule} must be one of {', '.join(RULE_LEVELS)}, got {level!r}"
            )


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        elif value is not None:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return asdict(cfg)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    rules = data.get("rules") or {}
    if not isinstance(rules, dict):
        raise ConfigError("rules must be a mapping of rule id to level")

    # YAML turns a bare `off` into False
    normalized_rules = {
        str(rule).upper(): ("off" if level is False else str(level).lower())
        for rule, level in rules.items()
    }

    return AppConfig(
        site=_section(SiteConfig, "site", data),
        front_matter=_section(FrontMatterConfig, "front_matter", data),
        links=_section(LinksConfig, "links", data),
        fences=_section(FencesConfig, "fences", data),
        cache=_section(CacheConfig, "cache", data),
        output=_section(OutputConfig, "output", data),
        logging=_section(LoggingConfig, "logging", data),
        rules=normalized_rules,
    )


def _section(cls: type, name: str, data: dict[str, Any]) -> Any:
    values = data.get(name) or {}
    if not isinstance(values, dict):
        raise ConfigError(f"{name} must be a mapping")
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ConfigError(f"Unknown key(s) in {name}: {', '.join(unknown)}")
    return cls(**values)
