"""Tests for the Markdown body scanner."""

from __future__ import annotations

from blog_audit.input.markdown import heading_id, normalize_url, scan_html, scan_markdown


def test_heading_ids_follow_gfm():
    assert heading_id("Using New-MKPassword") == "using-new-mkpassword"
    assert heading_id("2. Install the module") == "2-install-the-module"
    assert heading_id("snake_case name") == "snake_case-name"
    assert heading_id("Run `Get-Item` **now**") == "run-get-item-now"
    assert heading_id("Q&A: what's next?") == "qa-whats-next"


def test_heading_ids_with_kramdown_input():
    assert heading_id("2. Install the module", style="kramdown") == "install-the-module"
    assert heading_id("snake_case name", style="kramdown") == "snakecase-name"
    assert heading_id("Run `Get-Item` **now**", style="kramdown") == "run-get-item-now"


def test_scan_uses_requested_header_ids():
    body = "## 1. Install MessKit\n## 1. Install MessKit\n"
    assert [h.anchor for h in scan_markdown(body).headings] == [
        "1-install-messkit",
        "1-install-messkit-1",
    ]
    kramdown = scan_markdown(body, header_ids="kramdown")
    assert [h.anchor for h in kramdown.headings] == ["install-messkit", "install-messkit-1"]


def test_duplicate_and_explicit_ids():
    body = "# Intro\n## Intro\n## Usage {#custom-id}\n"
    result = scan_markdown(body, first_line=5)

    assert [h.anchor for h in result.headings] == ["intro", "intro-1", "custom-id"]
    assert [h.line for h in result.headings] == [5, 6, 7]
    assert result.headings[2].text == "Usage"


def test_setext_heading():
    result = scan_markdown("Title\n=====\n\nSub\n---\n")
    assert [(h.level, h.anchor) for h in result.headings] == [(1, "title"), (2, "sub")]


def test_fences_are_collected_with_languages():
    body = "```powershell\nGet-Item\n```\n~~~\nplain\n~~~\n```json\n{\n"
    result = scan_markdown(body)

    first, second, third = result.fences
    assert (first.language, first.start_line, first.end_line, first.content) == ("powershell", 1, 3, "Get-Item")
    assert first.closed
    assert second.language is None
    assert third.language == "json"
    assert not third.closed


def test_highlight_tag_is_a_fence():
    body = "{% highlight ruby %}\nputs 1\n{% endhighlight %}\n"
    result = scan_markdown(body)
    assert len(result.fences) == 1
    assert result.fences[0].language == "ruby"
    assert result.fences[0].content == "puts 1"


def test_headings_inside_fences_are_ignored():
    result = scan_markdown("```bash\n# not a heading\n[x](/nope/)\n```\n")
    assert result.headings == []
    assert result.links == []


def test_link_kinds():
    body = (
        "[About](/about/) ![Logo](/assets/logo.png) <https://example.com> [docs][r]\n"
        "\n"
        "[r]: https://example.org/docs\n"
    )
    result = scan_markdown(body)
    found = {(link.kind, link.target) for link in result.links}

    assert ("inline", "/about/") in found
    assert ("image", "/assets/logo.png") in found
    assert ("autolink", "https://example.com") in found
    assert ("reference", "https://example.org/docs") in found
    assert result.references == {"r": "https://example.org/docs"}
    assert result.undefined_references == []


def test_undefined_reference_is_reported():
    result = scan_markdown("See [the docs][missing].\n")
    assert [link.target for link in result.undefined_references] == ["missing"]


def test_linked_image_yields_both_targets():
    result = scan_markdown("[![Badge](/badge.svg)](https://ci.example.com)\n")
    assert {(link.kind, link.target) for link in result.links} == {
        ("image", "/badge.svg"),
        ("inline", "https://ci.example.com"),
    }


def test_liquid_tags_and_filters():
    body = (
        "[Part 1]({% post_url 2024-01-01-hello %}#setup)\n"
        "[Tags]({% link _tabs/tags.md %})\n"
        "[About]({{ '/about/' | relative_url }})\n"
        "[Home]({{ site.baseurl }}/)\n"
    )
    result = scan_markdown(body)
    found = [(link.kind, link.target, link.line) for link in result.links]

    assert ("post_url", "2024-01-01-hello#setup", 1) in found
    assert ("link_tag", "_tabs/tags.md", 2) in found
    assert ("inline", "/about/", 3) in found
    assert ("inline", "/", 4) in found
    assert len(found) == 4


def test_code_spans_and_comments_hide_links():
    result = scan_markdown("`[x](/nope/)` <!-- [y](/nope/) --> [z](/yes/)\n")
    assert [link.target for link in result.links] == ["/yes/"]


def test_inline_html_targets():
    result = scan_markdown('<a href="/tags/">Tags</a> <img src="/a.png" alt="">\n')
    assert {(link.kind, link.target) for link in result.links} == {
        ("html", "/tags/"),
        ("html", "/a.png"),
    }


def test_empty_inline_target_is_kept():
    result = scan_markdown("[empty]()\n")
    assert [(link.kind, link.target) for link in result.links] == [("inline", "")]


def test_scan_html_collects_ids_and_targets():
    result = scan_html('<h2 id="top">Top</h2>\n<a href="/x/">x</a>\n', first_line=4)
    assert [(h.anchor, h.line) for h in result.headings] == [("top", 4)]
    assert [(link.target, link.line) for link in result.links] == [("/x/", 5)]


def test_normalize_url():
    assert normalize_url("HTTPS://Example.com:443/path/#frag") == "https://example.com/path"
    assert normalize_url("http://example.com:8080/a?b=1") == "http://example.com:8080/a?b=1"


def test_fence_nested_in_list_item():
    body = (
        "1. Build the table:\n"
        "\n"
        "    ```powershell\n"
        "    $t = @{}; $t['keys'][0]\n"
        "    ```\n"
        "\n"
        "2. Print it.\n"
    )
    result = scan_markdown(body, first_line=4)

    assert len(result.fences) == 1
    fence = result.fences[0]
    assert fence.language == "powershell"
    assert fence.content == "$t = @{}; $t['keys'][0]"
    assert (fence.start_line, fence.end_line) == (6, 8)
    assert fence.closed
    assert result.undefined_references == []


def test_fence_in_nested_list_item():
    body = "- outer\n  - inner\n\n      ~~~yaml\n      a: [1]\n      ~~~\n"
    result = scan_markdown(body)

    assert [(f.language, f.content, f.closed) for f in result.fences] == [("yaml", "a: [1]", True)]


def test_indented_code_block_is_ignored():
    body = "Example:\n\n    $t['keys'][0]\n    [x](/nope/)\n\nAfter [home](/).\n"
    result = scan_markdown(body)

    assert result.fences == []
    assert result.undefined_references == []
    assert [link.target for link in result.links] == ["/"]


def test_paragraph_in_list_item_is_not_code():
    body = "- step one\n\n    see [docs](/docs/)\n"
    result = scan_markdown(body)
    assert [link.target for link in result.links] == ["/docs/"]
