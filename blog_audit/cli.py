"""
Command-line interface for blog-audit.

Uses Typer to expose the audit with options for the most common
configuration settings. Exit codes: 0 clean, 1 findings at or above the
fail_on level, 2 when the audit itself could not run.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

from .config import FAIL_LEVELS, OUTPUT_FORMATS, AppConfig, load_config, validate_config
from .core.rules import RULES, resolve_severity
from .core.site import load_site
from .errors import BlogAuditError
from .output import print_report, render_report, write_report
from .runner import run_audit

app = typer.Typer(add_completion=False, help="Audit a Jekyll blog source tree.")
console = Console()
err_console = Console(stderr=True)

DEFAULT_HTML_REPORT = "blog-audit-report.html"


def _load(config: Path | None) -> AppConfig:
    try:
        return load_config(str(config) if config else None)
    except BlogAuditError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=2) from exc


@app.command()
def check(
    site_dir: Path = typer.Argument(Path("."), help="Jekyll source directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file."),
    format: str | None = typer.Option(
        None, "--format", "-f", help=f"Report format: {', '.join(OUTPUT_FORMATS)}."
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report to a file."),
    external: bool | None = typer.Option(
        None, "--external/--no-external", help="Enable or disable external link probing."
    ),
    use_cache: bool | None = typer.Option(
        None, "--cache/--no-cache", help="Enable or disable the external link cache."
    ),
    fail_on: str | None = typer.Option(
        None, "--fail-on", help=f"Exit 1 at this level: {', '.join(FAIL_LEVELS)}."
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Audit a site and print or write the report.

    Args:
        site_dir: Jekyll source directory (where _config.yml lives)
        config: Optional path to YAML config file
        format: Report format override
        output: Report file path; without it text is printed to the console
        external: Whether to check external links
        use_cache: Whether to use the external link cache
        fail_on: Lowest severity that makes the command fail
        progress: Whether to show progress bars
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    cfg = _load(config)

    # Override with CLI options
    if format:
        cfg.output.format = format
    if output is not None:
        cfg.output.path = str(output)
    if external is not None:
        cfg.links.external = external
    if use_cache is not None:
        cfg.cache.enabled = use_cache
    if fail_on:
        cfg.output.fail_on = fail_on
    if log_level:
        cfg.logging.level = log_level

    try:
        validate_config(cfg)
        report = run_audit(site_dir, cfg, show_progress=progress, console=err_console)
        if cfg.output.path:
            path = write_report(report, cfg.output.format, Path(cfg.output.path))
            console.print(f"Report written: {path}")
        elif cfg.output.format == "text":
            print_report(report, console)
        elif cfg.output.format == "html":
            path = write_report(report, "html", Path(DEFAULT_HTML_REPORT))
            console.print(f"Report written: {path}")
        else:
            typer.echo(render_report(report, cfg.output.format))
    except BlogAuditError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    if report.has_failures(cfg.output.fail_on):
        raise typer.Exit(code=1)


@app.command()
def urls(
    site_dir: Path = typer.Argument(Path("."), help="Jekyll source directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file."),
):
    """List every URL the site publishes and the file behind it."""
    cfg = _load(config)
    try:
        site = load_site(site_dir, cfg.site)
    except BlogAuditError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    table = Table(title=f"URLs of {site_dir}")
    table.add_column("URL", no_wrap=True)
    table.add_column("Source", overflow="fold")
    url_map = site.url_map()
    for url in sorted(url_map):
        table.add_row(escape(url), escape(url_map[url].path))
    for url in sorted(site.static_files):
        table.add_row(escape(url), escape(url.lstrip("/")))
    for url in sorted(site.generated_urls):
        table.add_row(escape(url), "[dim](plugin)[/dim]")
    console.print(table)


@app.command()
def rules(
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file."),
):
    """List the rule catalogue with effective severities."""
    cfg = _load(config)
    table = Table(title="Rules")
    table.add_column("Rule", no_wrap=True)
    table.add_column("Default", no_wrap=True)
    table.add_column("Effective", no_wrap=True)
    table.add_column("Description")
    for rule in RULES.values():
        effective = resolve_severity(rule.id, cfg.rules)
        table.add_row(
            rule.id,
            rule.severity.value,
            effective.value if effective else "off",
            rule.description,
        )
    console.print(table)


if __name__ == "__main__":
    app()
