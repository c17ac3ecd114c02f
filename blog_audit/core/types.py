"""
Core data types for Blog Audit.

This module defines the fundamental data structures used throughout the audit:
- Severity: Ordered finding severity
- Link / CodeFence / Heading: Items found while scanning Markdown
- Document: A post, page or collection document with its front-matter and URL
- Finding: A single problem reported against a source location
- Report: All findings of one audit run
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"error": 3, "warning": 2, "info": 1}[self.value]


@dataclass
class Link:
    """A link target found in a document body.

    Attributes:
        target: The raw target as written (after Liquid output is stripped)
        line: 1-based line in the source file
        kind: "inline", "image", "reference", "autolink", "html", "post_url" or "link_tag"
        text: Link text when available
    """
    target: str
    line: int
    kind: str = "inline"
    text: str = ""


@dataclass
class CodeFence:
    """A fenced code block.

    Attributes:
        language: Lower-cased first word of the info string, or None
        info: The full info string
        start_line: Line of the opening fence
        end_line: Line of the closing fence (last line of the file when unclosed)
        content: Text between the fences
        closed: Whether a matching closing fence was found
    """
    language: str | None
    info: str
    start_line: int
    end_line: int
    content: str
    closed: bool = True


@dataclass
class Heading:
    level: int
    text: str
    anchor: str
    line: int


@dataclass
class Document:
    """A Markdown or HTML source file that Jekyll publishes.

    Attributes:
        path: POSIX path relative to the site source root
        kind: "post", "page" or "collection"
        collection: Collection name ("posts" for posts, None for pages)
        front_matter: Merged front-matter (defaults applied), None when absent
        raw_front_matter: Front-matter exactly as written in the file
        front_matter_error: Message and line when the front-matter is invalid
        key_lines: Source line of each top-level front-matter key
        body: Text after the front-matter block
        body_line: 1-based line where the body starts
        url: Published URL (computed by the permalink engine)
        markdown: Whether the body is converted from Markdown
        headings/links/fences/references: Results of scanning the body
    """
    path: str
    kind: str
    collection: str | None = None
    front_matter: dict[str, Any] | None = None
    raw_front_matter: dict[str, Any] | None = None
    front_matter_error: tuple[str, int | None] | None = None
    key_lines: dict[str, int] = field(default_factory=dict)
    body: str = ""
    body_line: int = 1
    url: str = ""
    markdown: bool = False
    headings: list[Heading] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    fences: list[CodeFence] = field(default_factory=list)
    references: dict[str, str] = field(default_factory=dict)
    undefined_references: list[Link] = field(default_factory=list)

    @property
    def title(self) -> str | None:
        if not self.front_matter:
            return None
        value = self.front_matter.get("title")
        return value if isinstance(value, str) else None

    @property
    def anchors(self) -> set[str]:
        return {heading.anchor for heading in self.headings}


@dataclass
class Finding:
    """A single problem found in the site.

    Attributes:
        rule: Rule identifier, e.g. "LNK001"
        severity: Effective severity after config overrides
        path: Source path relative to the site root
        line: 1-based line, or None when the finding concerns the whole file
        message: Human readable description
        suggestion: Optional hint (closest URL, expected value, ...)
    """
    rule: str
    severity: Severity
    path: str
    line: int | None
    message: str
    suggestion: str | None = None

    def sort_key(self) -> tuple[str, int, str]:
        return (self.path, self.line or 0, self.rule)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "severity": self.severity.value,
            "path": self.path,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class Report:
    """All findings of one audit run."""
    site: str
    findings: list[Finding] = field(default_factory=list)
    documents: int = 0
    urls: int = 0
    external_checked: int = 0
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    )

    def sorted_findings(self) -> list[Finding]:
        return sorted(self.findings, key=Finding.sort_key)

    def by_path(self) -> dict[str, list[Finding]]:
        grouped: dict[str, list[Finding]] = {}
        for finding in self.sorted_findings():
            grouped.setdefault(finding.path, []).append(finding)
        return grouped

    def counts(self) -> dict[str, int]:
        counter = Counter(finding.severity.value for finding in self.findings)
        return {severity.value: counter.get(severity.value, 0) for severity in Severity}

    def has_failures(self, fail_on: str) -> bool:
        """Return True when any finding is at or above the fail_on level."""
        if fail_on == "never":
            return False
        threshold = Severity(fail_on).rank
        return any(finding.severity.rank >= threshold for finding in self.findings)
