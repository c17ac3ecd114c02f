"""
Site model: what a Jekyll build of the source tree would publish.

The loader reads _config.yml and the Gemfile, walks the source tree, splits
documents from static files, applies front-matter defaults, computes every
published URL, and adds the URLs generated by plugins (archives, pagination,
sitemap, feed). Nothing is rendered; the site is only modelled so links can
be resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from fnmatch import fnmatch
import logging
import math
import os
from pathlib import Path, PurePosixPath
import posixpath
import re
from typing import Any
from urllib.parse import unquote, urlsplit

import yaml

from ..config import SiteConfig
from ..errors import FrontMatterError, SiteError
from ..input.frontmatter import (
    as_list,
    extract_front_matter_block,
    key_lines,
    parse_date,
    parse_front_matter,
)
from ..input.gemfile import Manifest, load_gemfile
from ..input.markdown import scan_html, scan_markdown
from ..utils.logging import log_event
from .permalinks import collection_url, page_url, post_url, slugify
from .types import Document


POST_NAME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)\.([^.]+)$")

JEKYLL_DEFAULT_EXCLUDES = [
    ".sass-cache",
    ".jekyll-cache",
    "gemfiles",
    "Gemfile",
    "Gemfile.lock",
    "node_modules",
    "vendor/bundle/",
    "vendor/cache/",
    "vendor/gems/",
    "vendor/ruby/",
]

ARCHIVE_DEFAULT_PERMALINKS = {
    "year": "/:year/",
    "month": "/:year/:month/",
    "day": "/:year/:month/:day/",
    "tag": "/tag/:name/",
    "category": "/category/:name/",
}

HTML_EXTS = {".html", ".htm"}
# Converters Jekyll runs on pages with front-matter
CONVERTED_EXTS = {".scss": ".css", ".sass": ".css"}


@dataclass
class Target:
    """Where an internal link lands.

    Attributes:
        kind: "document", "static" or "generated"
        url: The matching published URL
        document: The target document when kind is "document"
    """
    kind: str
    url: str
    document: Document | None = None


@dataclass
class Site:
    """A Jekyll site as the audit sees it.

    Attributes:
        root: Source directory
        config: Parsed _config.yml
        documents: Posts, pages and collection documents
        static_files: URLs of files copied verbatim ("/assets/img/a.png")
        generated_urls: URLs produced by plugins
        manifest: Parsed Gemfile, None when missing
        layouts: Layout names found in _layouts/
    """
    root: Path
    config: dict[str, Any] = field(default_factory=dict)
    documents: list[Document] = field(default_factory=list)
    static_files: set[str] = field(default_factory=set)
    generated_urls: set[str] = field(default_factory=set)
    manifest: Manifest | None = None
    layouts: set[str] = field(default_factory=set)

    @property
    def baseurl(self) -> str:
        value = self.config.get("baseurl") or ""
        return "/" + str(value).strip("/") if str(value).strip("/") else ""

    @property
    def url(self) -> str:
        return str(self.config.get("url") or "").rstrip("/")

    @property
    def posts(self) -> list[Document]:
        return [doc for doc in self.documents if doc.kind == "post"]

    def plugins(self) -> list[str]:
        """Plugins enabled in _config.yml (`plugins`, or the legacy `gems`)."""
        declared = self.config.get("plugins") or self.config.get("gems") or []
        if isinstance(declared, str):
            declared = [declared]
        return [str(name) for name in declared]

    @property
    def header_ids(self) -> str:
        """Heading id scheme: "kramdown" for `kramdown.input: kramdown`, else "gfm"."""
        kramdown = self.config.get("kramdown")
        if isinstance(kramdown, dict) and str(kramdown.get("input", "")).lower() == "kramdown":
            return "kramdown"
        return "gfm"

    def plugin_enabled(self, name: str) -> bool:
        if name in self.plugins():
            return True
        return self.manifest is not None and name in self.manifest.plugins()

    def url_map(self) -> dict[str, Document]:
        """Published URL -> first document publishing it."""
        mapping: dict[str, Document] = {}
        for doc in self.documents:
            if doc.url and doc.url not in mapping:
                mapping[doc.url] = doc
        return mapping

    def duplicate_urls(self) -> dict[str, list[Document]]:
        grouped: dict[str, list[Document]] = {}
        for doc in self.documents:
            if doc.url:
                grouped.setdefault(doc.url, []).append(doc)
        return {url: docs for url, docs in grouped.items() if len(docs) > 1}

    def all_urls(self) -> list[str]:
        urls = set(self.url_map()) | self.static_files | self.generated_urls
        return sorted(urls)

    def is_own_host(self, host: str) -> bool:
        if not self.url:
            return False
        own = (urlsplit(self.url).hostname or "").lower()
        return bool(own) and own == host.lower()

    def resolve(self, target: str, source: Document | None = None) -> Target | None:
        """Resolve an internal link target to a published URL.

        Args:
            target: Link target as written (path, optional query and fragment)
            source: Document containing the link, for relative targets

        Returns:
            Target when the path is published, None otherwise
        """
        parts = urlsplit(target)
        path = unquote(parts.path)

        if not path:
            if source is not None and source.url:
                return Target(kind="document", url=source.url, document=source)
            return None

        if not path.startswith("/"):
            base = source.url if source is not None and source.url else "/"
            directory = base if base.endswith("/") else base.rsplit("/", 1)[0] + "/"
            joined = posixpath.normpath(directory + path)
            path = joined + "/" if path.endswith("/") and joined != "/" else joined

        if self.baseurl and (path == self.baseurl or path.startswith(self.baseurl + "/")):
            path = path[len(self.baseurl):] or "/"

        documents = self.url_map()
        for candidate in _candidates(path):
            if candidate in documents:
                return Target(kind="document", url=candidate, document=documents[candidate])
            if candidate in self.static_files:
                return Target(kind="static", url=candidate)
            if candidate in self.generated_urls:
                return Target(kind="generated", url=candidate)
        return None

    def find_post(self, name: str) -> Document | None:
        """Find the post a {% post_url %} tag refers to."""
        wanted = name.strip("/")
        for doc in self.posts:
            stem = posixpath.splitext(doc.path)[0]
            if "/" in wanted:
                if stem.endswith("/" + wanted):
                    return doc
            elif posixpath.basename(stem) == wanted:
                return doc
        return None

    def find_source(self, path: str) -> Document | str | None:
        """Find the document or static file a {% link %} tag refers to."""
        wanted = path.strip().lstrip("/")
        for doc in self.documents:
            if doc.path == wanted:
                return doc
        static_url = "/" + wanted
        if static_url in self.static_files:
            return static_url
        return None


def load_site(root: Path, cfg: SiteConfig, logger: logging.Logger | None = None) -> Site:
    """Load a Jekyll site source tree.

    Raises:
        SiteError: When the directory does not exist or _config.yml is malformed
    """
    source = (root / cfg.source).resolve() if cfg.source not in ("", ".") else root.resolve()
    if not source.is_dir():
        raise SiteError(f"Site directory not found: {source}")

    config = _read_config(source / "_config.yml")
    if not (source / "_config.yml").exists():
        log_event(
            logger,
            "No _config.yml found, using Jekyll defaults",
            level=logging.WARNING,
            event="config_missing",
            root=str(source),
        )
    site = Site(root=source, config=config)
    site.manifest = load_gemfile(source / "Gemfile")
    site.layouts = {path.stem for path in (source / "_layouts").glob("*.html")}

    markdown_exts = {"." + ext.strip().lstrip(".") for ext in cfg.markdown_ext.split(",") if ext.strip()}
    excludes = JEKYLL_DEFAULT_EXCLUDES + [str(item) for item in (config.get("exclude") or [])]
    includes = [str(item) for item in (config.get("include") or [])]
    collections = _collections(config)
    posts_dir = cfg.posts_dir.strip("/")

    for rel in _walk(source, excludes, includes):
        top = rel.split("/", 1)[0]
        abs_path = source / rel

        if top == posts_dir:
            doc = _load_post(abs_path, rel, site, markdown_exts, drafts=False)
            if doc is not None:
                site.documents.append(doc)
            else:
                site.static_files.add("/" + rel)
            continue

        if top == "_drafts":
            if cfg.include_drafts:
                doc = _load_post(abs_path, rel, site, markdown_exts, drafts=True)
                if doc is not None:
                    site.documents.append(doc)
            continue

        if top.startswith("_"):
            label = top[1:]
            if label in collections:
                doc = _load_collection_doc(abs_path, rel, label, collections[label], site, markdown_exts)
                if doc is not None:
                    site.documents.append(doc)
            continue

        doc = _load_page(abs_path, rel, site, markdown_exts)
        if doc is not None:
            site.documents.append(doc)
        else:
            site.static_files.add("/" + rel)

    site.generated_urls = _generated_urls(site)
    log_event(
        logger,
        "Site loaded",
        event="site_loaded",
        root=str(source),
        documents=len(site.documents),
        static_files=len(site.static_files),
        generated=len(site.generated_urls),
    )
    return site


def _read_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SiteError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SiteError(f"{path} must contain a mapping")
    return data


def _collections(config: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Collections whose documents are written to the output."""
    raw = config.get("collections") or {}
    if isinstance(raw, list):
        raw = {str(name): {} for name in raw}
    published = {}
    for label, meta in raw.items():
        meta = meta if isinstance(meta, dict) else {}
        if label == "posts":
            continue
        if meta.get("output"):
            published[str(label)] = meta
    return published


def _walk(source: Path, excludes: list[str], includes: list[str]):
    """Yield POSIX paths (relative to source) of files Jekyll reads."""
    for dirpath, dirnames, filenames in os.walk(source):
        rel_dir = Path(dirpath).relative_to(source).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        kept_dirs = []
        for name in sorted(dirnames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if name == "_site" and not rel_dir:
                continue
            if _is_hidden(name, rel, includes) or _is_excluded(rel, excludes, includes):
                continue
            kept_dirs.append(name)
        dirnames[:] = kept_dirs

        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if _is_hidden(name, rel, includes) or _is_excluded(rel, excludes, includes):
                continue
            yield rel


def _is_hidden(name: str, rel: str, includes: list[str]) -> bool:
    special = name.startswith((".", "#")) or name.endswith("~")
    # Top-level "_" entries are site directories (_posts, _tabs); deeper ones are skipped
    underscored = name.startswith("_") and "/" in rel
    if not (special or underscored):
        return False
    return not any(_matches(rel, pattern) for pattern in includes)


def _is_excluded(rel: str, excludes: list[str], includes: list[str]) -> bool:
    if any(_matches(rel, pattern) for pattern in includes):
        return False
    return any(_matches(rel, pattern) for pattern in excludes)


def _matches(rel: str, pattern: str) -> bool:
    pattern = pattern.strip().lstrip("/")
    if not pattern:
        return False
    bare = pattern.rstrip("/")
    if rel == bare or rel.startswith(bare + "/"):
        return True
    return fnmatch(rel, pattern) or fnmatch(PurePosixPath(rel).name, pattern)


def _read_document(abs_path: Path, rel: str, kind: str, collection: str | None) -> Document | None:
    """Read a file; returns None when it has no front-matter (static file)."""
    try:
        text = abs_path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError):
        return None

    block, body, body_line = extract_front_matter_block(text)
    if block is None:
        return None

    doc = Document(path=rel, kind=kind, collection=collection, body=body, body_line=body_line)
    doc.key_lines = key_lines(block)
    try:
        doc.raw_front_matter = parse_front_matter(block)
    except FrontMatterError as exc:
        doc.front_matter_error = (str(exc), exc.line)
        doc.raw_front_matter = {}
    return doc


def _scan(doc: Document, ext: str, markdown_exts: set[str], header_ids: str = "gfm") -> None:
    doc.markdown = ext in markdown_exts
    if doc.markdown:
        scanned = scan_markdown(doc.body, doc.body_line, header_ids=header_ids)
    elif ext in HTML_EXTS:
        scanned = scan_html(doc.body, doc.body_line)
    else:
        return
    doc.headings = scanned.headings
    doc.links = scanned.links
    doc.fences = scanned.fences
    doc.references = scanned.references
    doc.undefined_references = scanned.undefined_references


def _output_ext(ext: str, markdown_exts: set[str]) -> str:
    if ext in markdown_exts or ext in HTML_EXTS:
        return ".html"
    return CONVERTED_EXTS.get(ext, ext)


def _load_post(
    abs_path: Path,
    rel: str,
    site: Site,
    markdown_exts: set[str],
    drafts: bool,
) -> Document | None:
    ext = abs_path.suffix.lower()
    if ext not in markdown_exts and ext not in HTML_EXTS:
        return None

    try:
        text = abs_path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError):
        return None

    doc = _read_document(abs_path, rel, "post", "drafts" if drafts else "posts")
    if doc is None:
        # Jekyll skips posts without front-matter; keep them so FM001 can report
        _block, body, body_line = extract_front_matter_block(text)
        return Document(path=rel, kind="post", collection="posts", body=body, body_line=body_line)

    doc.front_matter = _apply_defaults(site.config, rel, "drafts" if drafts else "posts", doc.raw_front_matter or {})
    _scan(doc, ext, markdown_exts, site.header_ids)

    name_match = POST_NAME_RE.match(abs_path.name)
    if drafts:
        slug = abs_path.stem
        file_date = datetime.fromtimestamp(abs_path.stat().st_mtime)
    elif name_match:
        year, month, day, slug = (name_match.group(i) for i in range(1, 5))
        try:
            file_date = datetime(int(year), int(month), int(day))
        except ValueError:
            return doc
    else:
        return doc

    fm = doc.front_matter
    if fm.get("published") is False:
        return doc

    post_date = parse_date(fm.get("date")) or file_date
    categories = as_list(fm.get("categories")) or as_list(fm.get("category"))
    permalink = fm.get("permalink") if isinstance(fm.get("permalink"), str) else None
    front_slug = fm.get("slug") if isinstance(fm.get("slug"), str) else None

    doc.url = post_url(
        style=site.config.get("permalink"),
        permalink=permalink,
        post_date=post_date,
        slug=slug,
        categories=categories,
        output_ext=_output_ext(ext, markdown_exts),
        front_slug=front_slug,
    )
    return doc


def _load_page(abs_path: Path, rel: str, site: Site, markdown_exts: set[str]) -> Document | None:
    doc = _read_document(abs_path, rel, "page", None)
    if doc is None:
        return None
    ext = abs_path.suffix.lower()
    doc.front_matter = _apply_defaults(site.config, rel, "pages", doc.raw_front_matter or {})
    _scan(doc, ext, markdown_exts, site.header_ids)

    if doc.front_matter.get("published") is False:
        return doc
    permalink = doc.front_matter.get("permalink")
    doc.url = page_url(
        style=site.config.get("permalink"),
        permalink=permalink if isinstance(permalink, str) else None,
        rel_path=rel,
        output_ext=_output_ext(ext, markdown_exts),
    )
    return doc


def _load_collection_doc(
    abs_path: Path,
    rel: str,
    label: str,
    meta: dict[str, Any],
    site: Site,
    markdown_exts: set[str],
) -> Document | None:
    ext = abs_path.suffix.lower()
    doc = _read_document(abs_path, rel, "collection", label)
    if doc is None:
        site.static_files.add("/" + rel)
        return None
    doc.front_matter = _apply_defaults(site.config, rel, label, doc.raw_front_matter or {})
    _scan(doc, ext, markdown_exts, site.header_ids)

    if doc.front_matter.get("published") is False:
        return doc
    permalink = doc.front_matter.get("permalink")
    if not isinstance(permalink, str):
        permalink = meta.get("permalink") if isinstance(meta.get("permalink"), str) else None
    front_slug = doc.front_matter.get("slug")
    doc.url = collection_url(
        label=label,
        permalink=permalink,
        rel_path=rel.split("/", 1)[1],
        output_ext=_output_ext(ext, markdown_exts),
        front_slug=front_slug if isinstance(front_slug, str) else None,
    )
    return doc


def _apply_defaults(
    config: dict[str, Any], rel: str, doc_type: str, front_matter: dict[str, Any]
) -> dict[str, Any]:
    """Merge _config.yml `defaults` into a document's front-matter.

    More specific scopes (longer path, then scopes naming a type) win over
    general ones; values written in the document always win.
    """
    entries = config.get("defaults") or []
    if not isinstance(entries, list):
        return dict(front_matter)

    matching: list[tuple[int, int, int, dict[str, Any]]] = []
    for order, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        scope = entry.get("scope") or {}
        values = entry.get("values") or {}
        if not isinstance(scope, dict) or not isinstance(values, dict):
            continue
        scope_path = str(scope.get("path") or "").strip("/")
        scope_type = scope.get("type")
        if scope_type and str(scope_type) != doc_type:
            continue
        if scope_path and not _path_in_scope(rel, scope_path):
            continue
        depth = len([part for part in scope_path.split("/") if part])
        matching.append((depth, 1 if scope_type else 0, order, values))

    merged: dict[str, Any] = {}
    for _depth, _typed, _order, values in sorted(matching, key=lambda item: item[:3]):
        merged.update(values)
    merged.update(front_matter)
    return merged


def _path_in_scope(rel: str, scope_path: str) -> bool:
    if "*" in scope_path:
        return fnmatch(rel, scope_path) or fnmatch(rel, scope_path + "/*")
    return rel == scope_path or rel.startswith(scope_path + "/")


def _generated_urls(site: Site) -> set[str]:
    urls: set[str] = set()

    if site.plugin_enabled("jekyll-archives"):
        urls |= _archive_urls(site)

    if site.plugin_enabled("jekyll-paginate"):
        urls |= _pagination_urls(site)

    if site.plugin_enabled("jekyll-sitemap"):
        urls.add("/sitemap.xml")
        urls.add("/robots.txt")

    if site.plugin_enabled("jekyll-feed"):
        feed = site.config.get("feed") or {}
        path = feed.get("path") if isinstance(feed, dict) else None
        urls.add("/" + str(path or "feed.xml").lstrip("/"))

    return urls


def _archive_urls(site: Site) -> set[str]:
    settings = site.config.get("jekyll-archives") or {}
    if not isinstance(settings, dict):
        return set()
    enabled = settings.get("enabled") or []
    if enabled == "all":
        enabled = ["year", "month", "day", "categories", "tags"]
    if isinstance(enabled, str):
        enabled = [enabled]
    permalinks = dict(ARCHIVE_DEFAULT_PERMALINKS)
    if isinstance(settings.get("permalinks"), dict):
        permalinks.update({str(k): str(v) for k, v in settings["permalinks"].items()})
    slug_mode = str(site.config.get("slug_mode") or settings.get("slug_mode") or "default")

    urls: set[str] = set()
    for doc in site.posts:
        if not doc.url or not doc.front_matter:
            continue
        if "categories" in enabled:
            for category in as_list(doc.front_matter.get("categories")):
                urls.add(_archive_url(permalinks["category"], name=slugify(category, mode=slug_mode)))
        if "tags" in enabled:
            for tag in as_list(doc.front_matter.get("tags")):
                urls.add(_archive_url(permalinks["tag"], name=slugify(tag, mode=slug_mode)))
        moment = parse_date(doc.front_matter.get("date"))
        if moment is None:
            match = POST_NAME_RE.match(PurePosixPath(doc.path).name)
            if match is None:
                continue
            moment = datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if "year" in enabled:
            urls.add(_archive_url(permalinks["year"], year=f"{moment.year:04d}"))
        if "month" in enabled:
            urls.add(_archive_url(permalinks["month"], year=f"{moment.year:04d}", month=f"{moment.month:02d}"))
        if "day" in enabled:
            urls.add(
                _archive_url(
                    permalinks["day"],
                    year=f"{moment.year:04d}",
                    month=f"{moment.month:02d}",
                    day=f"{moment.day:02d}",
                )
            )
    return urls


def _archive_url(template: str, **values: str) -> str:
    url = template
    for key, value in values.items():
        url = url.replace(f":{key}", value)
    return "/" + url.lstrip("/")


def _pagination_urls(site: Site) -> set[str]:
    per_page = site.config.get("paginate")
    if not isinstance(per_page, int) or per_page <= 0:
        return set()
    published = [doc for doc in site.posts if doc.url]
    total_pages = math.ceil(len(published) / per_page)
    template = str(site.config.get("paginate_path") or "/page:num/")
    urls = set()
    for num in range(2, total_pages + 1):
        url = "/" + template.replace(":num", str(num)).lstrip("/")
        urls.add(url)
    return urls


def _candidates(path: str) -> list[str]:
    """URL spellings that reach the same published file."""
    candidates = [path]
    last = path.rsplit("/", 1)[-1]
    if path.endswith("/index.html"):
        candidates.append(path[: -len("index.html")])
    elif path.endswith("/"):
        candidates.append(path + "index.html")
    elif "." not in last:
        candidates.extend([path + "/", path + ".html"])
    elif path.endswith(".html"):
        stem = path[: -len(".html")]
        candidates.extend([stem, stem + "/"])
    return candidates
