"""
Markdown scanner for kramdown/GFM post bodies.

This module does not render Markdown. It walks the body line by line and
collects what the checks need:
- fenced code blocks (``` / ~~~ fences and {% highlight %} tags)
- ATX and setext headings with kramdown auto-generated ids
- link targets: inline links, images, reference definitions and uses,
  autolinks, inline HTML href/src attributes, {% post_url %} and {% link %}
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

from ..core.types import CodeFence, Heading, Link


FENCE_OPEN_RE = re.compile(r"^( *)(`{3,}|~{3,})\s*([^`]*?)\s*$")
HIGHLIGHT_OPEN_RE = re.compile(r"^\s*\{%-?\s*highlight\s+(\S+)[^%]*-?%\}\s*$")
HIGHLIGHT_CLOSE_RE = re.compile(r"^\s*\{%-?\s*endhighlight\s*-?%\}\s*$")
ATX_RE = re.compile(r"^ {0,3}(#{1,6})(?:\s+(.*?))?\s*$")
SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)\s*$")
EXPLICIT_ID_RE = re.compile(r"\s*\{:?\s*#([A-Za-z][\w:.-]*)[^}]*\}\s*$")
LIST_ITEM_RE = re.compile(r"^( *)([-+*]|\d{1,9}[.)])( +|$)")
GFM_NON_WORD_RE = re.compile(r"[^\w\- \t]")

CODE_SPAN_RE = re.compile(r"(`+)(.+?)\1")
HTML_COMMENT_RE = re.compile(r"<!--.*?-->")
LIQUID_LINK_RE = re.compile(
    r"(?:\{\{\s*site\.(?:url|baseurl)\s*\}\})*"
    r"\{%-?\s*(post_url|link)\s+([^\s%]+)\s*-?%\}(#[\w:.-]+)?"
)
LIQUID_FILTER_RE = re.compile(
    r"\{\{\s*['\"]([^'\"]*)['\"]\s*\|\s*(?:relative_url|absolute_url)\s*\}\}"
)
LIQUID_SITE_RE = re.compile(r"\{\{\s*site\.(?:url|baseurl)\s*\}\}")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(\s*<?([^)\s>]*)>?(?:\s+[\"'(][^)]*[\"')])?\s*\)")
INLINE_RE = re.compile(r"\[([^\]]*)\]\(\s*<?([^)\s>]*)>?(?:\s+[\"'(][^)]*[\"')])?\s*\)")
REF_DEF_RE = re.compile(r"^ {0,3}\[([^\]^][^\]]*)\]:\s*<?(\S*?)>?(?:\s+[\"'(].*[\"')])?\s*$")
REF_USE_RE = re.compile(r"\[([^\]]+)\]\[([^\]]*)\]")
AUTOLINK_RE = re.compile(r"<((?:https?|ftp|mailto):[^>\s]+)>")
HTML_TAG_RE = re.compile(r"<(a|img|iframe|script|source|link)\b[^>]*>", re.IGNORECASE)

LIQUID_SENTINEL = "\x00liquid\x00"
IMAGE_SENTINEL = "image"


@dataclass
class ScanResult:
    """Everything collected from one Markdown body."""
    headings: list[Heading] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    fences: list[CodeFence] = field(default_factory=list)
    references: dict[str, str] = field(default_factory=dict)
    undefined_references: list[Link] = field(default_factory=list)


def scan_markdown(body: str, first_line: int = 1, header_ids: str = "gfm") -> ScanResult:
    """Scan a Markdown body.

    Args:
        body: Document text after the front-matter
        first_line: Source line number of the first body line
        header_ids: "gfm" (Jekyll's default input) or "kramdown"

    Returns:
        ScanResult with line numbers relative to the source file
    """
    result = ScanResult()
    lines = body.splitlines()
    ids = AnchorRegistry(header_ids)
    ref_uses: list[tuple[str, Link]] = []

    fence: dict | None = None
    previous_text: str | None = None
    # Content offsets of the open list items, innermost last
    lists: list[int] = []
    prev_blank = True
    in_indented_code = False

    for idx, line in enumerate(lines):
        lineno = first_line + idx

        if fence is not None:
            if _closes_fence(line, fence):
                result.fences.append(
                    CodeFence(
                        language=fence["language"],
                        info=fence["info"],
                        start_line=fence["start"],
                        end_line=lineno,
                        content="\n".join(fence["content"]),
                        closed=True,
                    )
                )
                fence = None
            else:
                fence["content"].append(_strip_indent(line, fence["indent"]))
            continue

        stripped = line.strip()
        if not stripped:
            prev_blank = True
            previous_text = None
            continue

        indent = _indent(line)
        if prev_blank:
            while lists and indent < lists[-1]:
                lists.pop()
        base = lists[-1] if lists else 0

        fence = _open_fence(line, lineno, base)
        if fence is not None:
            previous_text = None
            prev_blank = False
            in_indented_code = False
            continue

        if indent >= base + 4 and (prev_blank or in_indented_code):
            # Indented code block
            in_indented_code = True
            prev_blank = False
            previous_text = None
            continue
        in_indented_code = False
        prev_blank = False

        item = LIST_ITEM_RE.match(line)
        if item and not SETEXT_RE.match(line):
            while lists and indent < lists[-1]:
                lists.pop()
            lists.append(_content_offset(item))

        atx = ATX_RE.match(line)
        if atx:
            text = (atx.group(2) or "").rstrip("#").rstrip()
            result.headings.append(ids.heading(len(atx.group(1)), text, lineno))
            _scan_line(line, lineno, result, ref_uses)
            previous_text = None
            continue

        setext = SETEXT_RE.match(line)
        if setext and previous_text:
            level = 1 if setext.group(1).startswith("=") else 2
            result.headings.append(ids.heading(level, previous_text, lineno - 1))
            previous_text = None
            continue

        if not _is_block_marker(stripped):
            previous_text = stripped
        else:
            previous_text = None

        _scan_line(line, lineno, result, ref_uses)

    if fence is not None:
        result.fences.append(
            CodeFence(
                language=fence["language"],
                info=fence["info"],
                start_line=fence["start"],
                end_line=first_line + max(len(lines) - 1, 0),
                content="\n".join(fence["content"]),
                closed=False,
            )
        )

    for label, link in ref_uses:
        if label not in result.references:
            result.undefined_references.append(link)

    return result


class AnchorRegistry:
    """Generates unique heading ids the way kramdown's auto_ids does."""

    def __init__(self, style: str = "gfm") -> None:
        self.style = style
        self._used: dict[str, int] = {}

    def heading(self, level: int, text: str, line: int) -> Heading:
        explicit = EXPLICIT_ID_RE.search(text)
        if explicit:
            clean_text = text[: explicit.start()].rstrip()
            anchor = explicit.group(1)
            self._used.setdefault(anchor, 0)
            return Heading(level=level, text=clean_text, anchor=anchor, line=line)
        anchor = self.unique(heading_id(text, self.style))
        return Heading(level=level, text=text, anchor=anchor, line=line)

    def unique(self, base: str) -> str:
        if base not in self._used:
            self._used[base] = 0
            return base
        self._used[base] += 1
        return f"{base}-{self._used[base]}"


def heading_id(text: str, style: str = "gfm") -> str:
    """Return the auto id kramdown gives a heading.

    Jekyll's default input is GFM, whose ids keep digits, underscores and
    Unicode letters. The plain kramdown parser strips leading non-letters and
    everything outside [a-zA-Z0-9 -].

    Examples:
        >>> heading_id("1. Install MessKit")
        '1-install-messkit'
        >>> heading_id("1. Install MessKit", style="kramdown")
        'install-messkit'
    """
    if style == "kramdown":
        plain = strip_inline_markup(text)
        plain = re.sub(r"^[^a-zA-Z]+", "", plain)
        plain = re.sub(r"[^a-zA-Z0-9 -]", "", plain)
        plain = plain.replace(" ", "-").lower()
        return plain or "section"
    gfm = GFM_NON_WORD_RE.sub("", strip_inline_markup(text).lower())
    return re.sub(r"[ \t]", "-", gfm) or "section"


def strip_inline_markup(text: str) -> str:
    """Reduce inline Markdown to the text kramdown would render."""
    text = IMAGE_RE.sub(lambda m: m.group(1), text)
    text = INLINE_RE.sub(lambda m: m.group(1), text)
    text = CODE_SPAN_RE.sub(lambda m: m.group(2).strip(), text)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"(\*\*|__|\*|~~)", "", text)
    return text.strip()


def normalize_url(url: str) -> str:
    """Normalise an external URL for duplicate detection.

    Lower-cases scheme and host, drops default ports, the fragment and a
    trailing slash.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    if port and not ((scheme == "http" and port == 80) or (scheme == "https" and port == 443)):
        host = f"{host}:{port}"
    path = parts.path.rstrip("/")
    return urlunsplit((scheme, host, path, parts.query, ""))


def _open_fence(line: str, lineno: int, base: int = 0) -> dict | None:
    """Open a fence when the line starts one inside the current container.

    base is the content offset of the enclosing list item (0 outside lists);
    the fence may be indented up to three spaces past it.
    """
    match = FENCE_OPEN_RE.match(line)
    if match and len(match.group(1)) <= base + 3:
        marker = match.group(2)
        info = match.group(3).strip()
        # Backtick fences cannot carry backticks in the info string
        if marker[0] == "`" and "`" in info:
            return None
        return {
            "char": marker[0],
            "length": len(marker),
            "indent": len(match.group(1)),
            "base": base,
            "info": info,
            "language": _language(info),
            "start": lineno,
            "content": [],
            "liquid": False,
        }
    highlight = HIGHLIGHT_OPEN_RE.match(line)
    if highlight:
        return {
            "char": None,
            "length": 0,
            "indent": _indent(line),
            "base": base,
            "info": highlight.group(1),
            "language": highlight.group(1).lower(),
            "start": lineno,
            "content": [],
            "liquid": True,
        }
    return None


def _closes_fence(line: str, fence: dict) -> bool:
    if fence["liquid"]:
        return bool(HIGHLIGHT_CLOSE_RE.match(line))
    stripped = line.strip()
    if _indent(line) > fence["base"] + 3:
        return False
    if not stripped or set(stripped) != {fence["char"]}:
        return False
    return len(stripped) >= fence["length"]


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _content_offset(item: re.Match[str]) -> int:
    """Column where the text of a list item starts."""
    padding = len(item.group(3))
    if padding == 0 or padding > 4:
        padding = 1
    return len(item.group(1)) + len(item.group(2)) + padding


def _language(info: str) -> str | None:
    if not info:
        return None
    # kramdown IAL style: ```{: .language-powershell}
    ial = re.match(r"\{:?\s*\.language-([\w+#-]+)", info)
    if ial:
        return ial.group(1).lower()
    word = info.split()[0].strip("{}.")
    if word.startswith("language-"):
        word = word[len("language-"):]
    return word.lower() or None


def _strip_indent(line: str, indent: int) -> str:
    removable = _indent(line)
    return line[min(indent, removable):]


def _is_block_marker(stripped: str) -> bool:
    return stripped.startswith(("-", "*", "+", ">", "|", "{:", "<", "{%")) or bool(
        re.match(r"^\d+[.)]\s", stripped)
    )


def _scan_line(line: str, lineno: int, result: ScanResult, ref_uses: list[tuple[str, Link]]) -> None:
    definition = REF_DEF_RE.match(line)
    if definition:
        label = definition.group(1).strip().lower()
        target = _normalize_liquid(definition.group(2))
        result.references[label] = target
        if LIQUID_SENTINEL not in target and "{{" not in target:
            result.links.append(Link(target=target, line=lineno, kind="reference", text=label))
        for tag in _liquid_links(definition.group(2), lineno):
            result.links.append(tag)
        return

    text = HTML_COMMENT_RE.sub("", line)
    text = CODE_SPAN_RE.sub("", text)

    result.links.extend(_liquid_links(text, lineno))
    text = LIQUID_LINK_RE.sub(LIQUID_SENTINEL, text)
    text = _normalize_liquid(text)

    for match in IMAGE_RE.finditer(text):
        _add_link(result, match.group(2), lineno, "image", match.group(1))
    text = IMAGE_RE.sub(IMAGE_SENTINEL, text)

    for match in INLINE_RE.finditer(text):
        _add_link(result, match.group(2), lineno, "inline", match.group(1))
    remainder = INLINE_RE.sub("", text)

    for match in REF_USE_RE.finditer(remainder):
        label = (match.group(2) or match.group(1)).strip().lower()
        if label.startswith("^"):
            continue
        ref_uses.append((label, Link(target=label, line=lineno, kind="reference", text=match.group(1))))

    for match in AUTOLINK_RE.finditer(remainder):
        _add_link(result, match.group(1), lineno, "autolink", "")

    if HTML_TAG_RE.search(remainder):
        for target in _html_targets(remainder):
            _add_link(result, target, lineno, "html", "")


def _add_link(result: ScanResult, target: str, lineno: int, kind: str, text: str) -> None:
    if LIQUID_SENTINEL in target or "{{" in target or "{%" in target:
        return
    result.links.append(Link(target=target.strip(), line=lineno, kind=kind, text=text))


def _liquid_links(text: str, lineno: int) -> list[Link]:
    links = []
    for match in LIQUID_LINK_RE.finditer(text):
        kind = "post_url" if match.group(1) == "post_url" else "link_tag"
        target = match.group(2) + (match.group(3) or "")
        links.append(Link(target=target, line=lineno, kind=kind, text=""))
    return links


def _normalize_liquid(text: str) -> str:
    text = LIQUID_FILTER_RE.sub(lambda m: m.group(1), text)
    return LIQUID_SITE_RE.sub("", text)


def _html_targets(text: str) -> list[str]:
    soup = BeautifulSoup(text, "html.parser")
    targets: list[str] = []
    for tag in soup.find_all(True):
        for attr in ("href", "src"):
            value = tag.get(attr)
            if isinstance(value, str):
                targets.append(value)
    return targets


def scan_html(body: str, first_line: int = 1) -> ScanResult:
    """Scan an HTML page body for link targets and element ids."""
    result = ScanResult()
    for idx, line in enumerate(body.splitlines()):
        lineno = first_line + idx
        text = _normalize_liquid(HTML_COMMENT_RE.sub("", line))
        result.links.extend(_liquid_links(text, lineno))
        text = LIQUID_LINK_RE.sub(LIQUID_SENTINEL, text)
        if "<" not in text:
            continue
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup.find_all(True):
            element_id = tag.get("id")
            if isinstance(element_id, str) and element_id:
                result.headings.append(Heading(level=0, text=tag.get_text(strip=True), anchor=element_id, line=lineno))
            for attr in ("href", "src"):
                value = tag.get(attr)
                if isinstance(value, str):
                    _add_link(result, value, lineno, "html", "")
    return result
