"""
Report rendering.

Text output goes through a rich table, HTML through a Jinja2 template;
Markdown and JSON are built directly.
"""

from __future__ import annotations

import io
import json
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import OUTPUT_FORMATS
from ..core.types import Report, Severity
from ..errors import ConfigError


SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def summary_line(report: Report) -> str:
    counts = report.counts()
    return (
        f"{counts['error']} error(s), {counts['warning']} warning(s), {counts['info']} info "
        f"in {report.documents} document(s); {report.external_checked} external link(s) checked"
    )


def print_report(report: Report, console: Console) -> None:
    """Print findings as a table followed by the summary line."""
    findings = report.sorted_findings()
    if findings:
        table = Table(title=f"Audit of {escape(report.site)}", show_lines=False)
        table.add_column("File", style="bold")
        table.add_column("Line", justify="right", no_wrap=True)
        table.add_column("Level", no_wrap=True)
        table.add_column("Rule", no_wrap=True)
        table.add_column("Message", overflow="fold")
        last_path = None
        for finding in findings:
            # Only the first row of each file shows the path
            path = escape(finding.path) if finding.path != last_path else ""
            last_path = finding.path
            message = escape(finding.message)
            if finding.suggestion:
                message += f"\n[dim]{escape(finding.suggestion)}[/dim]"
            table.add_row(
                path,
                str(finding.line) if finding.line else "",
                f"[{SEVERITY_STYLES[finding.severity]}]{finding.severity.value}[/]",
                finding.rule,
                message,
            )
        console.print(table)
    else:
        console.print(f"[green]No findings in {escape(report.site)}[/green]")
    console.print(summary_line(report))


def render_text(report: Report, width: int = 120) -> str:
    console = Console(record=True, width=width, file=io.StringIO(), color_system=None)
    print_report(report, console)
    return console.export_text()


def render_markdown(report: Report) -> str:
    counts = report.counts()
    lines = [
        "# Audit report",
        "",
        f"- Site: {report.site}",
        f"- Generated: {report.generated_at}",
        f"- Documents: {report.documents}",
        f"- Errors: {counts['error']}, warnings: {counts['warning']}, info: {counts['info']}",
        "",
    ]
    grouped = report.by_path()
    if not grouped:
        lines.append("No findings.")
        lines.append("")
    for path, findings in grouped.items():
        lines.append(f"## {path}")
        lines.append("")
        for finding in findings:
            where = f"line {finding.line}" if finding.line else "file"
            lines.append(
                f"- **{finding.severity.value}** `{finding.rule}` ({where}): {finding.message}"
            )
            if finding.suggestion:
                lines.append(f"  - {finding.suggestion}")
        lines.append("")
    return "\n".join(lines)


def render_json(report: Report) -> str:
    payload = {
        "site": report.site,
        "generated_at": report.generated_at,
        "summary": {
            **report.counts(),
            "documents": report.documents,
            "urls": report.urls,
            "external_checked": report.external_checked,
        },
        "findings": [finding.to_dict() for finding in report.sorted_findings()],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def render_html(report: Report) -> str:
    env = Environment(
        loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("report.html")
    return template.render(
        title=f"Audit of {report.site}",
        report=report,
        counts=report.counts(),
        groups=list(report.by_path().items()),
        summary=summary_line(report),
    )


def render_report(report: Report, fmt: str) -> str:
    """Render a report in one of OUTPUT_FORMATS.

    Raises:
        ConfigError: For an unknown format
    """
    if fmt == "text":
        return render_text(report)
    if fmt == "markdown":
        return render_markdown(report)
    if fmt == "json":
        return render_json(report)
    if fmt == "html":
        return render_html(report)
    raise ConfigError(f"Unknown output format {fmt!r}; expected one of {', '.join(OUTPUT_FORMATS)}")


def write_report(report: Report, fmt: str, path: Path) -> Path:
    """Render a report and write it to path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_report(report, fmt), encoding="utf-8")
    return path
