"""Tests for the front-matter rules."""

from __future__ import annotations

from blog_audit.checks import check_front_matter
from blog_audit.config import FrontMatterConfig, SiteConfig
from blog_audit.core.site import load_site


def post(title: str = "A post", extra: str = "") -> str:
    return f"---\ntitle: {title}\ncategories: [Tools]\ntags: [misc]\n{extra}---\nBody\n"


def run(make_site, files, cfg: FrontMatterConfig | None = None):
    site = load_site(make_site(files), SiteConfig())
    return check_front_matter(site, cfg or FrontMatterConfig())


def by_rule(findings, rule):
    return [finding for finding in findings if finding.rule == rule]


def test_valid_post_has_no_findings(make_site):
    findings = run(make_site, {"_posts/2024-03-01-good.md": post()})
    assert findings == []


def test_post_without_front_matter(make_site):
    findings = run(make_site, {"_posts/2024-03-01-plain.md": "Just text.\n"})
    assert [(f.rule, f.line) for f in findings] == [("FM001", 1)]


def test_invalid_yaml(make_site):
    findings = run(make_site, {"_posts/2024-03-01-bad.md": "---\ntitle: [oops\n---\nBody\n"})
    assert [f.rule for f in findings] == ["FM002"]
    assert findings[0].line is not None


def test_missing_required_key(make_site):
    text = "---\ntitle: No tags\ncategories: [Tools]\n---\n"
    findings = run(make_site, {"_posts/2024-03-01-notags.md": text})
    missing = by_rule(findings, "FM003")
    assert len(missing) == 1
    assert "'tags'" in missing[0].message


def test_empty_required_key(make_site):
    text = "---\ntitle: Empty tags\ncategories: [Tools]\ntags: []\n---\n"
    findings = run(make_site, {"_posts/2024-03-01-empty.md": text})
    assert [(f.rule, f.line) for f in by_rule(findings, "FM003")] == [("FM003", 4)]


def test_date_from_filename_satisfies_required_date(make_site):
    findings = run(make_site, {"_posts/2024-03-01-nodate.md": post()})
    assert by_rule(findings, "FM003") == []


def test_wrong_types(make_site):
    files = {
        "_posts/2024-03-01-types.md": post(title="123", extra="permalink: relative/\npublished: maybe\n"),
    }
    findings = run(make_site, files)
    messages = [f.message for f in by_rule(findings, "FM004")]

    assert any(message.startswith("title must be a string") for message in messages)
    assert any(message.startswith("permalink must be a path") for message in messages)
    assert any(message.startswith("published must be") for message in messages)


def test_date_mismatch(make_site):
    findings = run(make_site, {"_posts/2024-03-06-date.md": post(extra="date: 2024-03-07\n")})
    mismatch = by_rule(findings, "FM005")
    assert [(f.line, f.severity.value) for f in mismatch] == [(5, "warning")]


def test_date_mismatch_can_be_disabled(make_site):
    cfg = FrontMatterConfig(check_filename_date=False)
    findings = run(make_site, {"_posts/2024-03-06-date.md": post(extra="date: 2024-03-07\n")}, cfg)
    assert by_rule(findings, "FM005") == []


def test_duplicate_permalinks(make_site):
    files = {
        "_posts/2024-03-01-one.md": post(extra="permalink: /same/\n"),
        "_posts/2024-03-02-two.md": post(extra="permalink: /same/\n"),
    }
    duplicates = by_rule(run(make_site, files), "FM006")
    assert [(f.path, f.line) for f in duplicates] == [("_posts/2024-03-02-two.md", 5)]


def test_unknown_layout_suggests_closest(make_site):
    findings = run(make_site, {"_posts/2024-03-01-layout.md": post(extra="layout: psot\n")})
    unknown = by_rule(findings, "FM007")
    assert len(unknown) == 1
    assert unknown[0].suggestion == "Did you mean 'post'?"


def test_layouts_directory_extends_known_layouts(make_site):
    files = {
        "_layouts/gallery.html": "<html>{{ content }}</html>\n",
        "_posts/2024-03-01-layout.md": post(extra="layout: gallery\n"),
    }
    assert by_rule(run(make_site, files), "FM007") == []


def test_parent_must_name_a_page(make_site):
    files = {
        "tools.md": "---\ntitle: Tools\n---\n",
        "child.md": "---\ntitle: Child\nparent: Toolz\n---\n",
    }
    dangling = by_rule(run(make_site, files), "FM008")
    assert len(dangling) == 1
    assert dangling[0].path == "child.md"
    assert dangling[0].suggestion == "Did you mean 'Tools'?"


def test_bad_post_filename(make_site):
    findings = run(make_site, {"_posts/hello.md": post()})
    assert [(f.rule, f.line) for f in by_rule(findings, "FM009")] == [("FM009", None)]


def test_title_length(make_site):
    cfg = FrontMatterConfig(max_title_length=10)
    findings = run(make_site, {"_posts/2024-03-01-long.md": post(title="A very long post title")}, cfg)
    assert [f.line for f in by_rule(findings, "FM010")] == [2]


def test_page_keys_apply_to_markdown_pages_only(make_site):
    files = {
        "index.html": "---\nlayout: home\n---\n",
        "assets/css/style.scss": "---\n---\n@import \"main\";\n",
        "notes.md": "---\nlayout: page\n---\nText\n",
    }
    findings = by_rule(run(make_site, files), "FM003")
    assert [(f.path, f.rule) for f in findings] == [("notes.md", "FM003")]
