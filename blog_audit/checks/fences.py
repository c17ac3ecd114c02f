"""
Code fence checks (FEN001-FEN004).

A fence must be closed, should declare a language, and that language should
be one Rouge (Jekyll's highlighter) knows. Where a parser is at hand the
content is checked against the declared language; brace languages such as
PowerShell only get a bracket/string/comment balance check.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
import json
import re
import tomllib
from xml.dom import minidom
from xml.parsers.expat import ExpatError

import yaml

from ..config import FencesConfig
from ..core.rules import make_finding
from ..core.site import Site
from ..core.types import CodeFence, Document, Finding


KNOWN_LANGUAGES = {
    "plaintext", "text", "plain", "txt", "console", "terminal", "output", "log",
    "shell", "sh", "bash", "zsh", "ksh", "fish", "shell_session", "shell-session", "shellsession",
    "powershell", "posh", "ps1", "psm1", "psd1", "pwsh", "ps", "powershell_session",
    "cmd", "bat", "batch", "batchfile", "dos",
    "python", "py", "python3", "pycon", "ipython",
    "ruby", "rb", "irb", "erb",
    "javascript", "js", "jsx", "typescript", "ts", "tsx", "json", "jsonc", "json5", "jsonl",
    "yaml", "yml", "xml", "html", "xhtml", "svg", "css", "scss", "sass", "less",
    "markdown", "md", "liquid", "jinja", "twig", "handlebars", "mustache",
    "c", "h", "cpp", "c++", "cxx", "hpp", "csharp", "cs", "c#", "fsharp", "fs",
    "java", "kotlin", "kt", "scala", "groovy", "gradle", "go", "golang",
    "rust", "rs", "swift", "objective-c", "objc", "dart", "php", "perl", "pl", "lua",
    "r", "julia", "matlab", "haskell", "hs", "elixir", "ex", "erlang", "clojure", "clj",
    "sql", "mysql", "postgresql", "psql", "plsql", "tsql", "graphql", "gql",
    "diff", "patch", "ini", "toml", "conf", "properties", "dotenv", "env", "csv", "tsv",
    "dockerfile", "docker", "make", "makefile", "cmake", "nginx", "apache", "http",
    "terraform", "tf", "hcl", "nix", "vb", "vbnet", "vbscript", "vba", "regex",
    "mermaid", "protobuf", "proto", "vim", "viml", "awk", "sed", "tex", "latex",
    "vue", "svelte", "zig", "nim", "asm", "nasm", "wasm", "solidity", "kusto", "kql",
    "yara", "sigma", "spl", "ldif", "registry", "reg",
}


@dataclass(frozen=True)
class BraceProfile:
    """Lexical rules needed to balance brackets in a language.

    Attributes:
        line_comments: Prefixes that start a comment running to end of line
        block_comment: (open, close) delimiters of block comments
        quotes: Quote character -> escape character (None means doubling)
        here_strings: PowerShell @" "@ / @' '@ here-strings
    """
    line_comments: tuple[str, ...] = ()
    block_comment: tuple[str, str] | None = None
    quotes: dict[str, str | None] = field(default_factory=dict)
    here_strings: bool = False


POWERSHELL = BraceProfile(
    line_comments=("#",),
    block_comment=("<#", "#>"),
    quotes={"'": None, '"': "`"},
    here_strings=True,
)
C_FAMILY = BraceProfile(
    line_comments=("//",),
    block_comment=("/*", "*/"),
    quotes={'"': "\\", "'": "\\"},
)
JS_FAMILY = BraceProfile(
    line_comments=("//",),
    block_comment=("/*", "*/"),
    quotes={'"': "\\", "'": "\\", "`": "\\"},
)
GO = BraceProfile(
    line_comments=("//",),
    block_comment=("/*", "*/"),
    quotes={'"': "\\", "'": "\\", "`": None},
)

BRACE_LANGUAGES = {
    "powershell": POWERSHELL,
    "posh": POWERSHELL,
    "ps1": POWERSHELL,
    "psm1": POWERSHELL,
    "pwsh": POWERSHELL,
    "javascript": JS_FAMILY,
    "js": JS_FAMILY,
    "typescript": JS_FAMILY,
    "ts": JS_FAMILY,
    "c": C_FAMILY,
    "cpp": C_FAMILY,
    "c++": C_FAMILY,
    "csharp": C_FAMILY,
    "cs": C_FAMILY,
    "c#": C_FAMILY,
    "java": C_FAMILY,
    "kotlin": C_FAMILY,
    "go": GO,
    "golang": GO,
}

PS_PROMPT_RE = re.compile(r"^\s*PS(?: [^>\n]*)?>\s?")
PYCON_PROMPT_RE = re.compile(r"^(>>>|\.\.\.) ?")
PAIRS = {")": "(", "]": "[", "}": "{"}


def check_fences(site: Site, cfg: FencesConfig) -> list[Finding]:
    """Run the fence rules over every published document."""
    findings: list[Finding] = []
    known = KNOWN_LANGUAGES | {lang.lower() for lang in cfg.extra_languages}
    for doc in site.documents:
        if doc.front_matter is None:
            continue
        for fence in doc.fences:
            findings.extend(_check_fence(doc, fence, cfg, known))
    return findings


def _check_fence(doc: Document, fence: CodeFence, cfg: FencesConfig, known: set[str]) -> list[Finding]:
    if not fence.closed:
        return [
            make_finding(
                "FEN001",
                doc.path,
                fence.start_line,
                "Code fence is never closed; the rest of the document renders as code",
            )
        ]

    if fence.language is None:
        if cfg.require_language:
            return [make_finding("FEN002", doc.path, fence.start_line, "Code fence has no language tag")]
        return []

    if fence.language not in known:
        return [
            make_finding(
                "FEN003",
                doc.path,
                fence.start_line,
                f"Unknown code fence language {fence.language!r}",
            )
        ]

    if not cfg.syntax_check:
        return []
    problem = syntax_error(fence.language, fence.content)
    if problem is None:
        return []
    message, rel_line = problem
    line = fence.start_line + rel_line if rel_line else fence.start_line
    return [
        make_finding(
            "FEN004",
            doc.path,
            line,
            f"{fence.language} fence does not parse: {message}",
        )
    ]


def syntax_error(language: str, content: str) -> tuple[str, int | None] | None:
    """Check content against a language.

    Returns:
        None when the content is fine (or no checker exists), otherwise a
        tuple of (message, 1-based line inside the fence or None)
    """
    if not content.strip() or "{%" in content:
        return None
    language = language.lower()
    if language in ("json",):
        return _check_json(content)
    if language in ("yaml", "yml"):
        return _check_yaml(content)
    if language in ("python", "py", "python3"):
        return _check_python(content)
    if language == "xml":
        return _check_xml(content)
    if language == "toml":
        return _check_toml(content)
    if language in BRACE_LANGUAGES:
        profile = BRACE_LANGUAGES[language]
        if profile is POWERSHELL:
            content = _strip_prompts(content)
        return check_balance(content, profile)
    return None


def check_balance(text: str, profile: BraceProfile) -> tuple[str, int | None] | None:
    """Check that brackets, strings and comments are balanced."""
    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
            continue

        if profile.here_strings and text.startswith(('@"', "@'"), i) and not text[i + 2:].split("\n", 1)[0].strip():
            closer = "\n" + text[i + 1] + "@"
            end = text.find(closer, i + 2)
            if end == -1:
                return "here-string is never closed", line
            line += text.count("\n", i, end + 1)
            i = end + len(closer)
            continue

        if profile.block_comment and text.startswith(profile.block_comment[0], i):
            opener, closer = profile.block_comment
            end = text.find(closer, i + len(opener))
            if end == -1:
                return f"comment {opener} is never closed", line
            line += text.count("\n", i, end)
            i = end + len(closer)
            continue

        if any(text.startswith(prefix, i) for prefix in profile.line_comments):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
            continue

        if ch in profile.quotes:
            escape = profile.quotes[ch]
            j = i + 1
            while True:
                if j >= n:
                    return f"string starting with {ch} is never closed", line
                c = text[j]
                if escape is not None and c == escape:
                    j += 2
                    continue
                if c == ch:
                    if escape is None and text[j + 1:j + 2] == ch:
                        j += 2
                        continue
                    break
                j += 1
            line += text.count("\n", i, j)
            i = j + 1
            continue

        if ch in "([{":
            stack.append((ch, line))
        elif ch in PAIRS:
            if not stack:
                return f"unexpected {ch!r}", line
            opener, opened_at = stack.pop()
            if opener != PAIRS[ch]:
                return f"{ch!r} closes {opener!r} opened on line {opened_at}", line
        i += 1

    if stack:
        opener, opened_at = stack[-1]
        return f"{opener!r} is never closed", opened_at
    return None


def _strip_prompts(content: str) -> str:
    """Keep only the commands of a PowerShell console transcript."""
    lines = content.splitlines()
    if not any(PS_PROMPT_RE.match(line) for line in lines):
        return content
    # Output lines become blank so line numbers stay aligned
    return "\n".join(
        PS_PROMPT_RE.sub("", line) if PS_PROMPT_RE.match(line) else "" for line in lines
    )


def _check_json(content: str) -> tuple[str, int | None] | None:
    try:
        json.loads(content)
    except json.JSONDecodeError as exc:
        return exc.msg, exc.lineno
    return None


def _check_yaml(content: str) -> tuple[str, int | None] | None:
    try:
        for _document in yaml.safe_load_all(content):
            pass
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        problem = getattr(exc, "problem", None) or str(exc)
        return problem, (mark.line + 1) if mark is not None else None
    return None


def _check_python(content: str) -> tuple[str, int | None] | None:
    if any(PYCON_PROMPT_RE.match(line) for line in content.splitlines()):
        return None
    try:
        ast.parse(content)
    except SyntaxError as exc:
        return exc.msg, exc.lineno
    return None


def _check_xml(content: str) -> tuple[str, int | None] | None:
    try:
        minidom.parseString(content.strip())
    except ExpatError as exc:
        return str(exc), exc.lineno
    return None


def _check_toml(content: str) -> tuple[str, int | None] | None:
    try:
        tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        return str(exc), getattr(exc, "lineno", None)
    return None
