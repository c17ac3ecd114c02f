"""Shared fixtures: build small Jekyll source trees on disk."""

from __future__ import annotations

from pathlib import Path
import textwrap

import pytest


CHIRPY_CONFIG = """
title: Example Blog
url: "https://example.github.io"
baseurl: ""
theme: jekyll-theme-chirpy
permalink: /posts/:title/
paginate: 1
plugins:
  - jekyll-archives
  - jekyll-paginate
  - jekyll-sitemap
jekyll-archives:
  enabled: [categories, tags]
  permalinks:
    tag: /tags/:name/
    category: /categories/:name/
collections:
  tabs:
    output: true
    sort_by: order
defaults:
  - scope:
      path: ""
      type: posts
    values:
      layout: post
      comments: true
  - scope:
      path: _tabs
    values:
      layout: page
      permalink: /:title/
exclude:
  - tools
"""

CHIRPY_GEMFILE = """
source "https://rubygems.org"

gem "jekyll", "~> 4.3.0"
gem "jekyll-theme-chirpy", "~> 7.3"

group :jekyll_plugins do
  gem "jekyll-sitemap"
  gem "jekyll-archives"
  gem "jekyll-paginate"
end
"""


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write {relative path: text} under root; text is dedented."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


@pytest.fixture
def make_site(tmp_path):
    """Return a factory that writes a site with the Chirpy config and Gemfile."""

    def _make(files: dict[str, str], config: str | None = CHIRPY_CONFIG, gemfile: str | None = CHIRPY_GEMFILE) -> Path:
        root = tmp_path / "site"
        base: dict[str, str] = {}
        if config is not None:
            base["_config.yml"] = config
        if gemfile is not None:
            base["Gemfile"] = gemfile
        base.update(files)
        return write_files(root, base)

    return _make
