"""
Front-matter checks (FM001-FM010).

Required keys are checked on the merged front-matter, after _config.yml
defaults are applied, because that is what Jekyll's templates see. A post's
date can come from its filename, so `date` counts as present when the
filename carries a valid one.
"""

from __future__ import annotations

from datetime import date
from pathlib import PurePosixPath
from typing import Any

from rapidfuzz import fuzz, process

from ..config import FrontMatterConfig
from ..core.rules import make_finding
from ..core.site import POST_NAME_RE, Site
from ..core.types import Document, Finding
from ..input.frontmatter import calendar_date, parse_date


def check_front_matter(site: Site, cfg: FrontMatterConfig) -> list[Finding]:
    """Run all front-matter rules over every document of the site."""
    findings: list[Finding] = []
    page_titles = {
        doc.title for doc in site.documents if doc.kind != "post" and doc.title
    }
    layouts = set(cfg.known_layouts) | site.layouts

    for doc in site.documents:
        if doc.front_matter_error is not None:
            message, line = doc.front_matter_error
            findings.append(make_finding("FM002", doc.path, line, message))
            continue
        if doc.raw_front_matter is None:
            if doc.kind == "post":
                findings.append(
                    make_finding(
                        "FM001",
                        doc.path,
                        1,
                        "Post has no front-matter block; Jekyll will not publish it",
                    )
                )
            continue

        fm = doc.front_matter or {}
        file_date = _filename_date(doc)
        if doc.kind == "post" and doc.collection == "posts" and file_date is None:
            findings.append(
                make_finding(
                    "FM009",
                    doc.path,
                    None,
                    "Post filename must look like YYYY-MM-DD-title.md",
                )
            )

        findings.extend(_required_keys(doc, fm, cfg, file_date))
        findings.extend(_types(doc, fm))

        if cfg.check_filename_date and doc.kind == "post" and file_date is not None:
            fm_date = parse_date(fm.get("date")) if "date" in fm else None
            if fm_date is not None and calendar_date(fm_date) != file_date:
                findings.append(
                    make_finding(
                        "FM005",
                        doc.path,
                        doc.key_lines.get("date"),
                        f"date {calendar_date(fm_date).isoformat()} differs from filename date "
                        f"{file_date.isoformat()}",
                        suggestion="Rename the file or fix the date so archives and URLs agree",
                    )
                )

        layout = fm.get("layout")
        if isinstance(layout, str) and layout not in layouts and layout != "none":
            findings.append(
                make_finding(
                    "FM007",
                    doc.path,
                    doc.key_lines.get("layout"),
                    f"Unknown layout {layout!r}",
                    suggestion=_closest(layout, layouts),
                )
            )

        parent = fm.get("parent")
        if isinstance(parent, str) and parent not in page_titles:
            findings.append(
                make_finding(
                    "FM008",
                    doc.path,
                    doc.key_lines.get("parent"),
                    f"parent {parent!r} does not match the title of any page",
                    suggestion=_closest(parent, page_titles),
                )
            )

        title = fm.get("title")
        if (
            cfg.max_title_length is not None
            and isinstance(title, str)
            and len(title) > cfg.max_title_length
        ):
            findings.append(
                make_finding(
                    "FM010",
                    doc.path,
                    doc.key_lines.get("title"),
                    f"Title is {len(title)} characters long (max {cfg.max_title_length})",
                )
            )

    for url, docs in site.duplicate_urls().items():
        first = docs[0]
        for other in docs[1:]:
            findings.append(
                make_finding(
                    "FM006",
                    other.path,
                    other.key_lines.get("permalink"),
                    f"URL {url} is also published by {first.path}",
                )
            )

    return findings


def _required_keys(
    doc: Document, fm: dict[str, Any], cfg: FrontMatterConfig, file_date: date | None
) -> list[Finding]:
    if doc.kind == "page" and not doc.markdown:
        # Required page keys apply to Markdown pages only
        return []
    kind = doc.collection if doc.kind == "collection" else doc.kind
    required = cfg.required.get(kind or "", [])
    findings = []
    for key in required:
        if key == "date" and doc.kind == "post" and file_date is not None and "date" not in fm:
            continue
        if _is_empty(fm.get(key)):
            findings.append(
                make_finding(
                    "FM003",
                    doc.path,
                    doc.key_lines.get(key, 1),
                    f"Required front-matter key {key!r} is missing or empty",
                )
            )
    return findings


def _types(doc: Document, fm: dict[str, Any]) -> list[Finding]:
    findings = []

    def report(key: str, message: str) -> None:
        findings.append(make_finding("FM004", doc.path, doc.key_lines.get(key), message))

    if "title" in fm and fm["title"] is not None and not isinstance(fm["title"], str):
        report("title", f"title must be a string, got {type(fm['title']).__name__}")

    for key in ("categories", "tags"):
        value = fm.get(key)
        if value is None or isinstance(value, str):
            continue
        if not isinstance(value, list) or not all(_is_scalar(item) for item in value):
            report(key, f"{key} must be a list of names or a space-separated string")

    if "nav_order" in fm:
        value = fm["nav_order"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            report("nav_order", f"nav_order must be a number, got {value!r}")

    if "date" in fm and fm["date"] is not None and parse_date(fm["date"]) is None:
        report("date", f"date {fm['date']!r} is not a valid date")

    if "permalink" in fm and fm["permalink"] is not None:
        value = fm["permalink"]
        if not isinstance(value, str) or not value.startswith("/"):
            report("permalink", f"permalink must be a path starting with '/', got {value!r}")

    for key in ("layout", "parent"):
        if key in fm and fm[key] is not None and not isinstance(fm[key], str):
            report(key, f"{key} must be a string, got {type(fm[key]).__name__}")

    if "published" in fm and not isinstance(fm["published"], bool):
        report("published", "published must be true or false")

    return findings


def _filename_date(doc: Document) -> date | None:
    match = POST_NAME_RE.match(PurePosixPath(doc.path).name)
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _closest(value: str, choices: set[str]) -> str | None:
    if not choices:
        return None
    match = process.extractOne(value, sorted(choices), scorer=fuzz.ratio, score_cutoff=70)
    if match is None:
        return None
    return f"Did you mean {match[0]!r}?"
