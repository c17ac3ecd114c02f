"""
Gemfile parser.

Reads the Bundler manifest of a Jekyll site well enough to answer which gems
(and which :jekyll_plugins) are declared. The file is Ruby, but Jekyll sites
only use a small declarative subset:
- source "https://rubygems.org"
- gem "name", "requirement", ..., group: :x, platforms: [:a, :b]
- group :a, :b do ... end
- platforms :a, :b do ... end
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re

from ..errors import ManifestError


SOURCE_RE = re.compile(r"""^source\s+["']([^"']+)["']""")
GEM_RE = re.compile(r"""^gem\s+["']([^"']+)["']\s*(.*)$""")
BLOCK_RE = re.compile(r"^(group|platforms|platform)\s+(.+?)\s+do\s*(\|.*\|)?$")
GENERIC_BLOCK_RE = re.compile(r"\bdo\s*(\|.*\|)?$")
QUOTED_RE = re.compile(r"""["']([^"']*)["']""")
SYMBOL_RE = re.compile(r":(\w+)")
OPTION_RE = re.compile(
    r"""[:]?(group|groups|platforms|platform)\s*(?::|=>)\s*(\[[^\]]*\]|:\w+|["'][^"']*["'])"""
)


@dataclass
class GemSpec:
    """A single `gem` declaration.

    Attributes:
        name: Gem name
        requirements: Version requirements, e.g. ["~> 4.3.0"]
        groups: Bundler groups (always includes "default" when none is given)
        platforms: Platform restrictions, empty for all platforms
        line: 1-based line in the Gemfile
    """
    name: str
    requirements: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=lambda: ["default"])
    platforms: list[str] = field(default_factory=list)
    line: int = 0


@dataclass
class Manifest:
    source: str | None = None
    gems: list[GemSpec] = field(default_factory=list)

    def get(self, name: str) -> GemSpec | None:
        for gem in self.gems:
            if gem.name == name:
                return gem
        return None

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def plugins(self) -> list[str]:
        """Return gems Jekyll auto-loads through the :jekyll_plugins group."""
        return [gem.name for gem in self.gems if "jekyll_plugins" in gem.groups]


def load_gemfile(path: Path) -> Manifest | None:
    """Read and parse a Gemfile; returns None when it does not exist."""
    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Cannot read {path}: {exc}") from exc
    return parse_gemfile(text)


def parse_gemfile(text: str) -> Manifest:
    """Parse Gemfile text into a Manifest.

    Unknown statements are ignored; unbalanced `end` lines are tolerated.
    """
    manifest = Manifest()
    stack: list[tuple[str, list[str]]] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = _strip_comment(raw).strip()
        if not line:
            continue

        source = SOURCE_RE.match(line)
        if source:
            manifest.source = source.group(1)
            continue

        block = BLOCK_RE.match(line)
        if block:
            kind = "group" if block.group(1) == "group" else "platforms"
            stack.append((kind, SYMBOL_RE.findall(block.group(2))))
            continue

        if line == "end":
            if stack:
                stack.pop()
            continue

        gem = GEM_RE.match(line)
        if gem:
            manifest.gems.append(_parse_gem(gem.group(1), gem.group(2), stack, lineno))
            continue

        if GENERIC_BLOCK_RE.search(line):
            stack.append(("other", []))

    return manifest


def _parse_gem(name: str, rest: str, stack: list[tuple[str, list[str]]], lineno: int) -> GemSpec:
    options = list(OPTION_RE.finditer(rest))
    positional = rest[: options[0].start()] if options else rest
    requirements = QUOTED_RE.findall(positional)

    groups: list[str] = []
    platforms: list[str] = []
    for kind, values in stack:
        if kind == "group":
            groups.extend(values)
        elif kind == "platforms":
            platforms.extend(values)

    for option in options:
        key, value = option.group(1), option.group(2)
        values = SYMBOL_RE.findall(value) or QUOTED_RE.findall(value)
        if key.startswith("group"):
            groups.extend(values)
        else:
            platforms.extend(values)

    return GemSpec(
        name=name,
        requirements=requirements,
        groups=groups or ["default"],
        platforms=platforms,
        line=lineno,
    )


def _strip_comment(line: str) -> str:
    quote: str | None = None
    for idx, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "#":
            return line[:idx]
    return line
