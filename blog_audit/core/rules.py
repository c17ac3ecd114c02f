"""
Rule catalogue.

Every finding carries a rule id. Each rule has a default severity that the
`rules:` config section can raise, lower, or switch off.
"""

from __future__ import annotations

from dataclasses import dataclass

from .types import Finding, Severity


@dataclass(frozen=True)
class Rule:
    id: str
    severity: Severity
    description: str


_E = Severity.ERROR
_W = Severity.WARNING

RULES: dict[str, Rule] = {
    rule.id: rule
    for rule in [
        Rule("FM001", _E, "Post has no front-matter block"),
        Rule("FM002", _E, "Front-matter is not a valid YAML mapping"),
        Rule("FM003", _E, "Required front-matter key is missing or empty"),
        Rule("FM004", _E, "Front-matter key has the wrong type"),
        Rule("FM005", _W, "Front-matter date differs from the filename date"),
        Rule("FM006", _E, "Two documents publish the same URL"),
        Rule("FM007", _W, "Unknown layout"),
        Rule("FM008", _E, "parent does not name the title of any page"),
        Rule("FM009", _E, "Post filename is not YYYY-MM-DD-title.ext"),
        Rule("FM010", _W, "Title is longer than the configured maximum"),
        Rule("LNK001", _E, "Internal link does not resolve"),
        Rule("LNK002", _W, "Link fragment does not match a heading"),
        Rule("LNK003", _E, "post_url or link tag target is missing"),
        Rule("LNK004", _E, "External link is broken"),
        Rule("LNK005", _W, "Plain http link where https is expected"),
        Rule("LNK006", _E, "Empty link target"),
        Rule("LNK007", _E, "Reference-style link uses an undefined reference"),
        Rule("LNK008", _W, "External URL appears more than once in a document"),
        Rule("LNK009", _W, "External link is rate limited"),
        Rule("FEN001", _E, "Code fence is never closed"),
        Rule("FEN002", _W, "Code fence has no language tag"),
        Rule("FEN003", _W, "Unknown code fence language"),
        Rule("FEN004", _E, "Code fence content does not parse as its language"),
        Rule("GEM001", _E, "Plugin is not declared in the Gemfile"),
        Rule("GEM002", _E, "Gemfile does not declare jekyll"),
        Rule("GEM003", _E, "Theme is not declared in the Gemfile"),
        Rule("GEM004", _W, "Gemfile is missing"),
    ]
}


def resolve_severity(rule_id: str, overrides: dict[str, str]) -> Severity | None:
    """Return the effective severity of a rule, or None when it is disabled."""
    level = overrides.get(rule_id)
    if level is None:
        return RULES[rule_id].severity
    if level == "off":
        return None
    return Severity(level)


def make_finding(
    rule_id: str,
    path: str,
    line: int | None,
    message: str,
    suggestion: str | None = None,
) -> Finding:
    """Build a finding with the rule's default severity."""
    return Finding(
        rule=rule_id,
        severity=RULES[rule_id].severity,
        path=path,
        line=line,
        message=message,
        suggestion=suggestion,
    )


def apply_overrides(findings: list[Finding], overrides: dict[str, str]) -> list[Finding]:
    """Apply config severity overrides, dropping findings of disabled rules."""
    kept: list[Finding] = []
    for finding in findings:
        severity = resolve_severity(finding.rule, overrides)
        if severity is None:
            continue
        finding.severity = severity
        kept.append(finding)
    return kept
