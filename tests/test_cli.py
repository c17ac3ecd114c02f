"""Tests for the command-line interface."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from blog_audit.cli import app


runner = CliRunner()

CLEAN_POST = "---\ntitle: Clean\ncategories: [Tools]\ntags: [misc]\n---\n[About](/about/)\n"
BROKEN_POST = "---\ntitle: Broken\ncategories: [Tools]\ntags: [misc]\n---\n[Nowhere](/nowhere/)\n"
ABOUT = "---\ntitle: About\n---\n"


def _check(*args: str):
    return runner.invoke(app, ["check", *args, "--no-external", "--no-progress"])


def test_clean_site_exits_zero(make_site):
    root = make_site({"_posts/2024-03-01-clean.md": CLEAN_POST, "_tabs/about.md": ABOUT})
    result = _check(str(root))

    assert result.exit_code == 0, result.output
    assert "No findings" in result.stdout


def test_findings_exit_one(make_site):
    root = make_site({"_posts/2024-03-01-broken.md": BROKEN_POST})
    result = _check(str(root))

    assert result.exit_code == 1
    assert "LNK001" in result.stdout


def test_fail_on_never(make_site):
    root = make_site({"_posts/2024-03-01-broken.md": BROKEN_POST})
    assert _check(str(root), "--fail-on", "never").exit_code == 0


def test_json_report_on_stdout(make_site):
    root = make_site({"_posts/2024-03-01-broken.md": BROKEN_POST})
    result = _check(str(root), "--format", "json")

    payload = json.loads(result.stdout)
    assert [item["rule"] for item in payload["findings"]] == ["LNK001"]


def test_report_written_to_file(make_site, tmp_path):
    root = make_site({"_posts/2024-03-01-broken.md": BROKEN_POST})
    target = tmp_path / "out" / "report.md"
    result = _check(str(root), "-f", "markdown", "-o", str(target))

    assert result.exit_code == 1
    assert target.read_text(encoding="utf-8").startswith("# Audit report")


def test_config_file_overrides(make_site, tmp_path):
    root = make_site({"_posts/2024-03-01-broken.md": BROKEN_POST})
    config = tmp_path / "blog_audit.yaml"
    config.write_text("rules:\n  LNK001: warning\n", encoding="utf-8")

    assert _check(str(root), "-c", str(config)).exit_code == 0


def test_tool_errors_exit_two(tmp_path):
    assert _check(str(tmp_path / "missing")).exit_code == 2

    config = tmp_path / "bad.yaml"
    config.write_text("output:\n  format: pdf\n", encoding="utf-8")
    assert _check(str(tmp_path), "-c", str(config)).exit_code == 2
    assert _check(str(tmp_path), "--format", "pdf").exit_code == 2


def test_urls_command(make_site):
    root = make_site({"_posts/2024-03-01-clean.md": CLEAN_POST, "_tabs/about.md": ABOUT, "assets/img/logo.png": "png"})
    result = runner.invoke(app, ["urls", str(root)])

    assert result.exit_code == 0
    assert "/posts/clean/" in result.stdout
    assert "/about/" in result.stdout
    assert "/assets/img/logo.png" in result.stdout


def test_rules_command(tmp_path):
    config = tmp_path / "blog_audit.yaml"
    config.write_text("rules:\n  FM007: off\n", encoding="utf-8")
    result = runner.invoke(app, ["rules", "-c", str(config)])

    assert result.exit_code == 0
    assert "FM001" in result.stdout
    assert "off" in result.stdout
