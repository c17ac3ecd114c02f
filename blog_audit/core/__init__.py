"""
Core domain models.

This package contains data types, the rule catalogue and the site model,
independent of any specific check.
"""

from .types import CodeFence, Document, Finding, Heading, Link, Report, Severity
from .rules import RULES, Rule, apply_overrides, make_finding, resolve_severity

__all__ = [
    "CodeFence",
    "Document",
    "Finding",
    "Heading",
    "Link",
    "Report",
    "Severity",
    "RULES",
    "Rule",
    "apply_overrides",
    "make_finding",
    "resolve_severity",
]
