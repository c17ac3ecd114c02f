"""
Gemfile checks (GEM001-GEM004).

Compares what _config.yml asks for (plugins, theme) with what the Gemfile
declares, so `bundle exec jekyll build` does not fail on a missing gem.
"""

from __future__ import annotations

from pathlib import Path
import re

from ..core.rules import make_finding
from ..core.site import Site
from ..core.types import Finding


# Runtime dependencies of the jekyll gem itself
JEKYLL_BUNDLED = {"jekyll-sass-converter", "jekyll-watch", "kramdown-parser-gfm"}

# Gems that pull in Jekyll and a plugin whitelist
GITHUB_PAGES_PLUGINS = {
    "jekyll-coffeescript", "jekyll-default-layout", "jekyll-feed", "jekyll-gist",
    "jekyll-github-metadata", "jekyll-include-cache", "jekyll-mentions",
    "jekyll-optional-front-matter", "jekyll-paginate", "jekyll-readme-index",
    "jekyll-redirect-from", "jekyll-relative-links", "jekyll-remote-theme",
    "jekyll-seo-tag", "jekyll-sitemap", "jekyll-titles-from-headings",
    "jemoji", "jekyll-avatar",
}

# Plugins a theme gem depends on, so declaring the theme is enough
THEME_PLUGINS = {
    "jekyll-theme-chirpy": {
        "jekyll-paginate", "jekyll-redirect-from", "jekyll-seo-tag",
        "jekyll-archives", "jekyll-sitemap", "jekyll-include-cache",
    },
    "minima": {"jekyll-feed", "jekyll-seo-tag"},
}

CONFIG_FILE = "_config.yml"


def check_manifest(site: Site) -> list[Finding]:
    """Check the Gemfile against _config.yml."""
    config_path = site.root / CONFIG_FILE
    if site.manifest is None:
        if config_path.exists():
            return [
                make_finding(
                    "GEM004",
                    "Gemfile",
                    None,
                    "Gemfile is missing; the Jekyll version and plugins are not pinned",
                    suggestion="Add a Gemfile declaring jekyll, the theme and plugins",
                )
            ]
        return []

    findings: list[Finding] = []
    manifest = site.manifest
    github_pages = manifest.has("github-pages")

    if not (manifest.has("jekyll") or github_pages):
        findings.append(
            make_finding(
                "GEM002",
                "Gemfile",
                None,
                "Gemfile does not declare jekyll",
                suggestion='gem "jekyll", "~> 4.3"',
            )
        )

    theme = site.config.get("theme")
    if isinstance(theme, str) and theme and not manifest.has(theme):
        findings.append(
            make_finding(
                "GEM003",
                CONFIG_FILE,
                _config_line(config_path, rf"^theme\s*:"),
                f"Theme {theme!r} is not declared in the Gemfile",
                suggestion=f'gem "{theme}"',
            )
        )

    provided = set(JEKYLL_BUNDLED)
    if github_pages:
        provided |= GITHUB_PAGES_PLUGINS
    for gem in manifest.gems:
        provided |= THEME_PLUGINS.get(gem.name, set())

    for plugin in site.plugins():
        if manifest.has(plugin) or plugin in provided:
            continue
        findings.append(
            make_finding(
                "GEM001",
                CONFIG_FILE,
                _config_line(config_path, rf"^\s*-\s*['\"]?{re.escape(plugin)}['\"]?\s*(#.*)?$"),
                f"Plugin {plugin!r} is enabled in {CONFIG_FILE} but not declared in the Gemfile",
                suggestion=f'Add gem "{plugin}" to the :jekyll_plugins group',
            )
        )
    return findings


def _config_line(path: Path, pattern: str) -> int | None:
    """Return the first line of _config.yml matching a pattern."""
    if not path.exists():
        return None
    regex = re.compile(pattern)
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if regex.search(line):
            return lineno
    return None
