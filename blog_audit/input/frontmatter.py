"""
YAML front-matter extraction.

Jekyll only treats a file as a document when its very first line is `---`.
The block ends at the next line that is `---` or `...`; without such a line
the file has no front-matter and is copied as a static file.
"""

from __future__ import annotations

from datetime import date, datetime
import re
from typing import Any

import yaml

from ..errors import FrontMatterError


_DELIMITER_RE = re.compile(r"^---\s*$")
_TERMINATOR_RE = re.compile(r"^(---|\.\.\.)\s*$")
_KEY_RE = re.compile(r"^([A-Za-z_][\w-]*)\s*:")

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def extract_front_matter_block(text: str) -> tuple[str | None, str, int]:
    """Split raw file text into the front-matter block and the body.

    Args:
        text: Full file contents

    Returns:
        Tuple of (block, body, body_line). block is None when the file has no
        front-matter; body_line is the 1-based line where the body starts.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.splitlines()
    if not lines or not _DELIMITER_RE.match(lines[0]):
        return None, text, 1

    for idx in range(1, len(lines)):
        if _TERMINATOR_RE.match(lines[idx]):
            block = "\n".join(lines[1:idx])
            body = "\n".join(lines[idx + 1:])
            return block, body, idx + 2

    # Opening delimiter without a terminator
    return None, text, 1


def parse_front_matter(block: str) -> dict[str, Any]:
    """Parse a front-matter block into a mapping.

    Raises:
        FrontMatterError: When the YAML is malformed or not a mapping. The
            error line is relative to the file (the block starts on line 2).
    """
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 2 if mark is not None else 2
        problem = getattr(exc, "problem", None) or str(exc)
        raise FrontMatterError(f"Invalid YAML: {problem}", line) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            f"Front-matter must be a mapping, got {type(data).__name__}", 2
        )
    return {str(key): value for key, value in data.items()}


def split_front_matter(text: str) -> tuple[dict[str, Any] | None, str, int]:
    """Extract and parse front-matter in one step.

    Returns:
        Tuple of (data, body, body_line); data is None without front-matter.

    Raises:
        FrontMatterError: When a block exists but is not a valid mapping.
    """
    block, body, body_line = extract_front_matter_block(text)
    if block is None:
        return None, body, body_line
    return parse_front_matter(block), body, body_line


def parse_date(value: Any) -> date | datetime | None:
    """Interpret a front-matter date the way Jekyll accepts it.

    Examples:
        >>> parse_date("2024-03-01 10:00:00 +0100").year
        2024
        >>> parse_date("yesterday") is None
        True
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def calendar_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def as_list(value: Any) -> list[str]:
    """Normalise categories/tags: a string is split on whitespace."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def key_lines(block: str) -> dict[str, int]:
    """Map each top-level key of a block to its 1-based line in the file."""
    lines: dict[str, int] = {}
    for idx, line in enumerate(block.splitlines()):
        match = _KEY_RE.match(line)
        if match and match.group(1) not in lines:
            lines[match.group(1)] = idx + 2
    return lines
