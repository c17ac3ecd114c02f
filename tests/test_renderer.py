from pathlib import Path
import json

import pytest

from blog_audit.core.types import Finding, Report, Severity
from blog_audit.errors import ConfigError
from blog_audit.output import render_report, write_report


def _sample_report() -> Report:
    return Report(
        site="site",
        findings=[
            Finding("LNK001", Severity.ERROR, "_posts/2024-03-01-b.md", 12, "Internal link /x/ does not resolve",
                    suggestion="Did you mean /y/?"),
            Finding("FM007", Severity.WARNING, "_posts/2024-03-01-b.md", 3, "Unknown layout 'psot'"),
            Finding("GEM004", Severity.WARNING, "Gemfile", None, "Gemfile is missing"),
            Finding("FEN003", Severity.INFO, "about.md", 8, "Unknown code fence language '<script>'"),
        ],
        documents=3,
        urls=10,
        generated_at="2024-03-01 10:00 UTC",
    )


def test_render_markdown_outputs_one_section_per_file() -> None:
    text = render_report(_sample_report(), "markdown")

    assert text.startswith("# Audit report")
    assert "- Errors: 1, warnings: 2, info: 1" in text
    assert "## Gemfile" in text
    assert "## _posts/2024-03-01-b.md" in text
    assert "- **warning** `GEM004` (file): Gemfile is missing" in text
    assert "  - Did you mean /y/?" in text
    # Findings within a file are ordered by line
    assert text.index("FM007") < text.index("LNK001")


def test_render_json_summary_and_order() -> None:
    payload = json.loads(render_report(_sample_report(), "json"))

    assert payload["site"] == "site"
    assert payload["summary"]["error"] == 1
    assert payload["summary"]["warning"] == 2
    assert payload["summary"]["documents"] == 3
    assert [item["rule"] for item in payload["findings"]] == ["GEM004", "FM007", "LNK001", "FEN003"]
    assert payload["findings"][0]["line"] is None


def test_render_html_escapes_messages() -> None:
    html = render_report(_sample_report(), "html")

    assert "<h1>Audit of site</h1>" in html
    assert "&lt;script&gt;" in html
    assert "<script>" not in html


def test_render_text_contains_table_and_summary() -> None:
    text = render_report(_sample_report(), "text")

    assert "LNK001" in text
    assert "Did you mean /y/?" in text
    assert "1 error(s), 2 warning(s), 1 info in 3 document(s)" in text


def test_render_text_without_findings() -> None:
    text = render_report(Report(site="site"), "text")
    assert "No findings in site" in text


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ConfigError):
        render_report(_sample_report(), "pdf")


def test_write_report_creates_directories(tmp_path: Path) -> None:
    path = write_report(_sample_report(), "markdown", tmp_path / "out" / "report.md")
    assert path.read_text(encoding="utf-8").startswith("# Audit report")
