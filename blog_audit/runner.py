"""
Audit orchestration.

This module coordinates one audit run:
1. Load the site model (config, Gemfile, documents, static files)
2. Check the Gemfile against _config.yml
3. Check front-matter
4. Check code fences
5. Check internal links and collect external ones
6. Check external links (optional, cached)

Rule severity overrides are applied last, so every check reports with the
catalogue defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from .checks import check_fences, check_front_matter, check_links, check_manifest, external_findings
from .checks.links import ExternalRef
from .config import AppConfig
from .core.rules import apply_overrides
from .core.site import load_site
from .core.types import Finding, Report
from .fetch import LinkCache, LinkStatus, check_external
from .utils.logging import log_event, setup_logging


STAGES = 6


@dataclass
class ExternalStats:
    total: int = 0
    cached: int = 0
    broken: int = 0


def cache_dir(site_root: Path, cfg: AppConfig) -> Path:
    """Resolve the cache directory; relative paths are under the site root."""
    path = Path(cfg.cache.dir).expanduser()
    return path if path.is_absolute() else site_root / path


def run_audit(
    site_dir: Path,
    cfg: AppConfig,
    show_progress: bool = True,
    console: Console | None = None,
) -> Report:
    """Audit a Jekyll site source tree.

    Args:
        site_dir: Root of the Jekyll source (where _config.yml lives)
        cfg: Application configuration
        show_progress: Whether to display progress bars
        console: Rich console for progress output (creates default if None)

    Returns:
        Report with all findings after severity overrides

    Raises:
        SiteError: When the site directory or _config.yml cannot be read
        ManifestError: When the Gemfile cannot be read
    """
    site_dir = Path(site_dir)
    logger = setup_logging(cfg.logging, cache_dir(site_dir, cfg))
    log_event(logger, "Audit start", event="audit_start", site=str(site_dir))

    progress: Progress | None = None
    if show_progress:
        progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console or Console(stderr=True),
            transient=True,
        )
        progress.start()

    try:
        report = _run_stages(site_dir, cfg, logger, progress)
    finally:
        if progress is not None:
            progress.stop()

    counts = report.counts()
    log_event(
        logger,
        "Audit complete",
        event="audit_complete",
        documents=report.documents,
        errors=counts["error"],
        warnings=counts["warning"],
        infos=counts["info"],
        external_checked=report.external_checked,
    )
    return report


def _run_stages(
    site_dir: Path,
    cfg: AppConfig,
    logger: logging.Logger,
    progress: Progress | None,
) -> Report:
    stage_task = progress.add_task("Loading site", total=STAGES) if progress else None

    def advance(next_description: str | None = None) -> None:
        if progress is None or stage_task is None:
            return
        progress.advance(stage_task, 1)
        if next_description:
            progress.update(stage_task, description=next_description)

    site = load_site(site_dir, cfg.site, logger)
    advance("Checking Gemfile")

    findings: list[Finding] = []
    findings.extend(_stage(logger, "manifest", check_manifest(site)))
    advance("Checking front-matter")

    findings.extend(_stage(logger, "front_matter", check_front_matter(site, cfg.front_matter)))
    advance("Checking code fences")

    findings.extend(_stage(logger, "fences", check_fences(site, cfg.fences)))
    advance("Checking links")

    link_findings, external_refs = check_links(site, cfg.links)
    findings.extend(_stage(logger, "links", link_findings))
    advance("Checking external links")

    stats = ExternalStats()
    if cfg.links.external and external_refs:
        statuses = _check_external_links(site_dir, external_refs, cfg, logger, progress)
        stats.total = len(statuses)
        stats.cached = sum(1 for status in statuses.values() if status.from_cache)
        stats.broken = sum(1 for status in statuses.values() if not status.ok)
        findings.extend(_stage(logger, "external", external_findings(external_refs, statuses)))
    else:
        log_event(
            logger,
            "External links skipped",
            event="external_skipped",
            enabled=cfg.links.external,
            urls=len(external_refs),
        )
    advance()

    log_event(
        logger,
        "External stats",
        event="external_stats",
        total=stats.total,
        cached=stats.cached,
        broken=stats.broken,
    )

    return Report(
        site=str(site_dir),
        findings=apply_overrides(findings, cfg.rules),
        documents=len(site.documents),
        urls=len(site.all_urls()),
        external_checked=stats.total,
    )


def _stage(logger: logging.Logger, name: str, findings: list[Finding]) -> list[Finding]:
    log_event(logger, "Stage complete", event="stage_complete", stage=name, findings=len(findings))
    return findings


def _check_external_links(
    site_dir: Path,
    refs: list[ExternalRef],
    cfg: AppConfig,
    logger: logging.Logger,
    progress: Progress | None,
) -> dict[str, LinkStatus]:
    urls = list(dict.fromkeys(ref.url for ref in refs))
    cache = LinkCache(
        cache_dir(site_dir, cfg),
        enabled=cfg.cache.enabled,
        ttl_days=cfg.cache.ttl_days,
    )
    link_task = progress.add_task("External links", total=len(urls)) if progress else None

    def on_done(_status: LinkStatus) -> None:
        if progress is not None and link_task is not None:
            progress.advance(link_task, 1)

    return check_external(urls, cfg.links, cache=cache, logger=logger, on_done=on_done)
