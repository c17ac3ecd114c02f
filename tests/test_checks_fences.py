"""Tests for the code fence rules."""

from __future__ import annotations

from blog_audit.checks import check_fences
from blog_audit.checks.fences import C_FAMILY, POWERSHELL, check_balance, syntax_error
from blog_audit.config import FencesConfig, SiteConfig
from blog_audit.core.site import load_site


def run(make_site, body: str, cfg: FencesConfig | None = None):
    text = f"---\ntitle: Code\ncategories: [Tools]\ntags: [misc]\n---\n{body}"
    site = load_site(make_site({"_posts/2024-03-01-code.md": text}), SiteConfig())
    return check_fences(site, cfg or FencesConfig())


def test_powershell_balance_ignores_strings_and_comments():
    script = (
        "function Get-Thing {\n"
        "    param([string]$Name)\n"
        '    Write-Host "}"  # } in a comment\n'
        "    Write-Host 'it''s fine ('\n"
        "    <# { block comment #>\n"
        "}\n"
    )
    assert check_balance(script, POWERSHELL) is None


def test_powershell_here_string():
    script = '$text = @"\n{ not code\n"@\nWrite-Host $text\n'
    assert check_balance(script, POWERSHELL) is None


def test_unclosed_brace_reports_opening_line():
    assert check_balance("if ($x) {\n    Write-Host 'a'\n", POWERSHELL) == ("'{' is never closed", 1)


def test_mismatched_bracket():
    message, line = check_balance("int main() {\n  return f(];\n}", C_FAMILY)
    assert "closes" in message
    assert line == 2


def test_unterminated_string():
    message, line = check_balance('printf("oops);\n', C_FAMILY)
    assert "never closed" in message
    assert line == 1


def test_console_prompts_are_stripped():
    transcript = "PS C:\\> Get-Process | Where-Object { $_.CPU -gt 1 }\nHandles  NPM(K) {\n"
    assert syntax_error("powershell", transcript) is None


def test_parsers_for_data_languages():
    assert syntax_error("json", '{"a": 1}') is None
    assert syntax_error("json", '{"a": 1,}') is not None
    assert syntax_error("yaml", "a: [1, 2") is not None
    assert syntax_error("yml", "a: 1\n---\nb: 2\n") is None
    assert syntax_error("toml", "a = ") is not None
    assert syntax_error("xml", "<a><b></a>") is not None
    assert syntax_error("python", "def f(:\n    pass\n")[1] == 1


def test_python_console_sessions_are_skipped():
    assert syntax_error("python", ">>> def f(:\n... pass\n") is None


def test_liquid_raw_blocks_are_skipped():
    assert syntax_error("json", "{% raw %}{{ not json }}{% endraw %}") is None


def test_languages_without_checker_pass():
    assert syntax_error("bash", "if [ -z $x ]; then") is None


def test_fence_rules(make_site):
    body = (
        "```\nplain\n```\n"
        "```powershel\nGet-Item\n```\n"
        '```json\n{\n  "a": 1\n  "b": 2\n}\n```\n'
        "```bash\necho never closed\n"
    )
    findings = run(make_site, body)

    assert [(f.rule, f.line) for f in findings] == [
        ("FEN002", 6),
        ("FEN003", 9),
        ("FEN004", 15),
        ("FEN001", 18),
    ]


def test_fence_options(make_site):
    body = "```\nplain\n```\n```powershel\nGet-Item\n```\n"
    cfg = FencesConfig(require_language=False, extra_languages=["PowerShel"])
    assert run(make_site, body, cfg) == []


def test_syntax_check_can_be_disabled(make_site):
    body = '```json\n{"a": }\n```\n'
    assert run(make_site, body, FencesConfig(syntax_check=False)) == []
