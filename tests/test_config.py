"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from blog_audit.config import AppConfig, load_config, validate_config
from blog_audit.errors import ConfigError


def write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "blog_audit.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_without_file():
    cfg = load_config(None)

    assert cfg.output.format == "text"
    assert cfg.output.fail_on == "error"
    assert cfg.front_matter.required["post"] == ["title", "date", "categories", "tags"]
    assert "post" in cfg.front_matter.known_layouts
    assert cfg.links.concurrency == 8
    assert cfg.rules == {}


def test_defaults_are_not_shared():
    first = load_config(None)
    first.links.ignore_urls.append("x")
    assert load_config(None).links.ignore_urls == []


def test_file_values_merge_with_defaults(tmp_path: Path):
    path = write(
        tmp_path,
        "links:\n"
        "  external: false\n"
        "  ignore_urls: ['^https://twitter\\.com']\n"
        "front_matter:\n"
        "  max_title_length: 70\n"
        "output:\n"
        "  format: json\n",
    )
    cfg = load_config(path)

    assert cfg.links.external is False
    assert cfg.links.ignore_urls == ["^https://twitter\\.com"]
    assert cfg.links.enforce_https is True
    assert cfg.front_matter.max_title_length == 70
    assert cfg.output.format == "json"


def test_rule_overrides_are_normalised(tmp_path: Path):
    cfg = load_config(write(tmp_path, "rules:\n  lnk005: ERROR\n  FM007: off\n"))
    assert cfg.rules == {"LNK005": "error", "FM007": "off"}


def test_unknown_keys_are_rejected(tmp_path: Path):
    with pytest.raises(ConfigError, match="links"):
        load_config(write(tmp_path, "links:\n  externals: false\n"))


def test_invalid_values_are_rejected(tmp_path: Path):
    with pytest.raises(ConfigError, match="output.format"):
        load_config(write(tmp_path, "output:\n  format: pdf\n"))
    with pytest.raises(ConfigError, match="rules.FM001"):
        load_config(write(tmp_path, "rules:\n  FM001: fatal\n"))


def test_broken_files(tmp_path: Path):
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(write(tmp_path, "links: [\n"))
    with pytest.raises(ConfigError, match="mapping"):
        load_config(write(tmp_path, "- a\n"))
    with pytest.raises(ConfigError, match="Cannot read"):
        load_config(str(tmp_path / "missing.yaml"))


def test_validate_config_checks_numbers():
    cfg = AppConfig()
    cfg.links.concurrency = 0
    with pytest.raises(ConfigError, match="concurrency"):
        validate_config(cfg)
