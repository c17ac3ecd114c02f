"""
Link checks (LNK001-LNK009).

Internal targets are resolved against the site model. External http(s)
targets are only collected here; the checker in blog_audit.fetch checks them
and `external_findings` turns its results into findings.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from urllib.parse import unquote, urlsplit

from rapidfuzz import fuzz, process

from ..config import LinksConfig
from ..core.rules import make_finding
from ..core.site import Site
from ..core.types import Document, Finding, Link
from ..fetch.checker import LinkStatus
from ..input.markdown import normalize_url


SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:", "ftp:", "irc:", "sms:")
LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "[::1]"}


@dataclass
class ExternalRef:
    """One occurrence of an external URL in the site."""
    url: str
    path: str
    line: int | None


def check_links(site: Site, cfg: LinksConfig) -> tuple[list[Finding], list[ExternalRef]]:
    """Check every link of every published document.

    Returns:
        Tuple of (findings, external references to check)
    """
    findings: list[Finding] = []
    external: list[ExternalRef] = []
    ignore = [re.compile(pattern) for pattern in cfg.ignore_urls]
    known_urls = site.all_urls()

    for doc in site.documents:
        if doc.front_matter is None:
            continue
        seen: dict[str, int] = {}
        for link in _document_links(doc):
            if any(pattern.search(link.target) for pattern in ignore):
                continue
            if link.kind == "post_url":
                findings.extend(_check_post_url(site, doc, link, cfg))
                continue
            if link.kind == "link_tag":
                findings.extend(_check_link_tag(site, doc, link, cfg))
                continue
            findings.extend(_check_target(site, doc, link, cfg, known_urls, seen, external))

        for link in doc.undefined_references:
            findings.append(
                make_finding(
                    "LNK007",
                    doc.path,
                    link.line,
                    f"Reference [{link.target}] is used but never defined",
                )
            )

    return findings, external


def external_findings(refs: list[ExternalRef], statuses: dict[str, LinkStatus]) -> list[Finding]:
    """Turn checker results into findings, one per occurrence."""
    findings: list[Finding] = []
    for ref in refs:
        status = statuses.get(ref.url)
        if status is None or status.ok:
            continue
        if status.status_code == 429:
            findings.append(
                make_finding(
                    "LNK009",
                    ref.path,
                    ref.line,
                    f"{ref.url} answered 429 Too Many Requests",
                    suggestion="Re-run later or add the host to links.ignore_urls",
                )
            )
            continue
        detail = f"HTTP {status.status_code}" if status.status_code else (status.error or "request failed")
        findings.append(make_finding("LNK004", ref.path, ref.line, f"{ref.url} is broken ({detail})"))
    return findings


def _document_links(doc: Document) -> list[Link]:
    links = list(doc.links)
    fm = doc.front_matter or {}
    image = fm.get("image")
    if isinstance(image, dict):
        image = image.get("path")
    if isinstance(image, str) and image.strip():
        links.append(Link(target=image.strip(), line=doc.key_lines.get("image", 1), kind="image"))
    return links


def _check_target(
    site: Site,
    doc: Document,
    link: Link,
    cfg: LinksConfig,
    known_urls: list[str],
    seen: dict[str, int],
    external: list[ExternalRef],
) -> list[Finding]:
    target = link.target.strip()
    if not target:
        return [make_finding("LNK006", doc.path, link.line, "Link has an empty target")]
    if target == "#" or target.lower().startswith(SKIPPED_SCHEMES):
        return []

    if target.startswith("//"):
        target = "https:" + target
    parts = urlsplit(target)
    scheme = parts.scheme.lower()

    if scheme in ("http", "https"):
        host = parts.hostname or ""
        if site.is_own_host(host):
            internal = parts.path or "/"
            if parts.fragment:
                internal += "#" + parts.fragment
            return _check_internal(site, doc, link, internal, cfg, known_urls)
        return _check_external(doc, link, target, host, cfg, seen, external)

    if scheme:
        # Custom URI schemes are left to the browser
        return []

    if link.kind == "image" and not target.startswith("/"):
        subpath = (doc.front_matter or {}).get("media_subpath") or (doc.front_matter or {}).get("img_path")
        if isinstance(subpath, str) and subpath:
            target = subpath.rstrip("/") + "/" + target
    return _check_internal(site, doc, link, target, cfg, known_urls)


def _check_external(
    doc: Document,
    link: Link,
    target: str,
    host: str,
    cfg: LinksConfig,
    seen: dict[str, int],
    external: list[ExternalRef],
) -> list[Finding]:
    findings: list[Finding] = []
    if cfg.enforce_https and target.lower().startswith("http://") and host.lower() not in LOCAL_HOSTS:
        findings.append(
            make_finding(
                "LNK005",
                doc.path,
                link.line,
                f"{target} uses plain http",
                suggestion="https://" + target[len("http://"):],
            )
        )

    normalized = normalize_url(target)
    if normalized in seen:
        findings.append(
            make_finding(
                "LNK008",
                doc.path,
                link.line,
                f"{target} already appears on line {seen[normalized]}",
            )
        )
    else:
        seen[normalized] = link.line

    external.append(ExternalRef(url=target.split("#", 1)[0], path=doc.path, line=link.line))
    return findings


def _check_internal(
    site: Site,
    doc: Document,
    link: Link,
    target: str,
    cfg: LinksConfig,
    known_urls: list[str],
) -> list[Finding]:
    resolved = site.resolve(target, doc)
    if resolved is None:
        path = unquote(urlsplit(target).path)
        return [
            make_finding(
                "LNK001",
                doc.path,
                link.line,
                f"Internal link {link.target} does not resolve to a published page or file",
                suggestion=_closest_url(path, known_urls),
            )
        ]

    fragment = unquote(urlsplit(target).fragment)
    if cfg.check_anchors and fragment and resolved.document is not None:
        return _check_fragment(doc, link, resolved.document, fragment)
    return []


def _check_post_url(site: Site, doc: Document, link: Link, cfg: LinksConfig) -> list[Finding]:
    name, _, fragment = link.target.partition("#")
    post = site.find_post(name)
    if post is None:
        stems = [p.path.rsplit("/", 1)[-1].rsplit(".", 1)[0] for p in site.posts]
        return [
            make_finding(
                "LNK003",
                doc.path,
                link.line,
                f"post_url target {name!r} does not match any post",
                suggestion=_closest_name(name, stems),
            )
        ]
    if cfg.check_anchors and fragment:
        return _check_fragment(doc, link, post, fragment)
    return []


def _check_link_tag(site: Site, doc: Document, link: Link, cfg: LinksConfig) -> list[Finding]:
    path, _, fragment = link.target.partition("#")
    found = site.find_source(path)
    if found is None:
        return [
            make_finding(
                "LNK003",
                doc.path,
                link.line,
                f"link tag target {path!r} does not exist in the site source",
            )
        ]
    if cfg.check_anchors and fragment and isinstance(found, Document):
        return _check_fragment(doc, link, found, fragment)
    return []


def _check_fragment(doc: Document, link: Link, target: Document, fragment: str) -> list[Finding]:
    if fragment in target.anchors:
        return []
    closest = _closest_name(fragment, sorted(target.anchors))
    return [
        make_finding(
            "LNK002",
            doc.path,
            link.line,
            f"#{fragment} does not match a heading in {target.path}",
            suggestion=closest,
        )
    ]


def _closest_url(path: str, known_urls: list[str]) -> str | None:
    if not known_urls:
        return None
    match = process.extractOne(path, known_urls, scorer=fuzz.ratio, score_cutoff=80)
    if match is None:
        return None
    return f"Did you mean {match[0]}?"


def _closest_name(value: str, choices: list[str]) -> str | None:
    if not choices:
        return None
    match = process.extractOne(value, choices, scorer=fuzz.ratio, score_cutoff=70)
    if match is None:
        return None
    return f"Did you mean {match[0]}?"
