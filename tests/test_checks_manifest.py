"""Tests for the Gemfile rules."""

from __future__ import annotations

from blog_audit.checks import check_manifest
from blog_audit.config import SiteConfig
from blog_audit.core.site import load_site

from conftest import CHIRPY_CONFIG, CHIRPY_GEMFILE


def run(make_site, config=CHIRPY_CONFIG, gemfile=CHIRPY_GEMFILE):
    site = load_site(make_site({}, config=config, gemfile=gemfile), SiteConfig())
    return check_manifest(site)


def test_chirpy_site_is_consistent(make_site):
    assert run(make_site) == []


def test_missing_gemfile(make_site):
    findings = run(make_site, gemfile=None)
    assert [(f.rule, f.path, f.severity.value) for f in findings] == [("GEM004", "Gemfile", "warning")]


def test_no_config_and_no_gemfile(make_site):
    assert run(make_site, config=None, gemfile=None) == []


def test_jekyll_not_declared(make_site):
    gemfile = CHIRPY_GEMFILE.replace('gem "jekyll", "~> 4.3.0"\n', "")
    assert [f.rule for f in run(make_site, gemfile=gemfile)] == ["GEM002"]


def test_github_pages_provides_jekyll_and_whitelisted_plugins(make_site):
    gemfile = 'source "https://rubygems.org"\ngem "github-pages", group: :jekyll_plugins\n'
    config = "theme: minima\nplugins:\n  - jekyll-feed\n  - jekyll-archives\n"
    findings = run(make_site, config=config, gemfile=gemfile)

    assert [(f.rule, f.line) for f in findings] == [("GEM003", 1), ("GEM001", 4)]
    assert "jekyll-archives" in findings[1].message


def test_theme_not_declared(make_site):
    gemfile = CHIRPY_GEMFILE.replace('gem "jekyll-theme-chirpy", "~> 7.3"\n', "")
    findings = run(make_site, gemfile=gemfile)

    assert [f.rule for f in findings] == ["GEM003"]
    assert findings[0].path == "_config.yml"
    assert findings[0].suggestion == 'gem "jekyll-theme-chirpy"'


def test_theme_gem_provides_its_plugins(make_site):
    gemfile = 'gem "jekyll"\ngem "jekyll-theme-chirpy"\n'
    assert run(make_site, gemfile=gemfile) == []


def test_plugin_not_declared(make_site):
    gemfile = 'gem "jekyll"\ngem "jekyll-theme-chirpy"\n'
    config = CHIRPY_CONFIG.replace("  - jekyll-sitemap\n", "  - jekyll-sitemap\n  - jekyll-spaceship\n")
    findings = run(make_site, config=config, gemfile=gemfile)

    assert [f.rule for f in findings] == ["GEM001"]
    assert findings[0].suggestion == 'Add gem "jekyll-spaceship" to the :jekyll_plugins group'
