"""
Jekyll permalink engine.

Computes the URL Jekyll publishes a document at, following Jekyll 4 rules:
- built-in styles (date, pretty, ordinal, weekdate, none) or a custom template
- placeholders (:categories, :year, :month, :title, :slug, :path, ...)
- front-matter `permalink` overrides the site style
- pages get a style-dependent suffix ("/" for pretty styles, ".html" otherwise)
"""

from __future__ import annotations

from datetime import date, datetime
import posixpath
import re


BUILTIN_STYLES = {
    "date": "/:categories/:year/:month/:day/:title:output_ext",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "ordinal": "/:categories/:year/:y_day/:title:output_ext",
    "weekdate": "/:categories/:year/W:week/:short_day/:title:output_ext",
    "none": "/:categories/:title:output_ext",
}

COLLECTION_DEFAULT = "/:collection/:path:output_ext"

_PLACEHOLDER_RE = re.compile(r":([a-z_]+)")

_SLUG_PATTERNS = {
    "default": re.compile(r"[\W_]+"),
    "pretty": re.compile(r"(?:[^\w._~!$&'()+,;=@]|_)+"),
    "raw": re.compile(r"\s+"),
}


def slugify(text: str, mode: str = "default", cased: bool = False) -> str:
    """Slugify a string the way Jekyll's Utils.slugify does.

    Examples:
        >>> slugify("PowerShell Security")
        'powershell-security'
        >>> slugify("New-MKPassword", mode="pretty", cased=True)
        'New-MKPassword'
    """
    if mode == "none":
        slug = text
    else:
        pattern = _SLUG_PATTERNS.get(mode, _SLUG_PATTERNS["default"])
        slug = pattern.sub("-", text).strip("-")
    return slug if cased else slug.lower()


def permalink_template(style: str | None) -> str:
    """Return the template behind a site-level permalink setting."""
    if not style:
        return BUILTIN_STYLES["date"]
    return BUILTIN_STYLES.get(str(style).lstrip(":"), str(style))


def permalink_suffix(style: str | None) -> str:
    """Suffix Jekyll adds to page templates for a site permalink style."""
    template = permalink_template(style)
    if template.endswith("/"):
        return "/"
    if template.endswith(":output_ext"):
        return ":output_ext"
    return ""


def expand(template: str, placeholders: dict[str, str]) -> str:
    """Replace :placeholders and normalise slashes.

    Unknown placeholders are left as written, like Jekyll does.
    """

    def replace(match: re.Match[str]) -> str:
        return placeholders.get(match.group(1), match.group(0))

    return sanitize(_PLACEHOLDER_RE.sub(replace, template))


def sanitize(url: str) -> str:
    url = re.sub(r"/{2,}", "/", url)
    url = re.sub(r"/\./", "/", url)
    if not url.startswith("/"):
        url = "/" + url
    return url


def post_url(
    *,
    style: str | None,
    permalink: str | None,
    post_date: date | datetime,
    slug: str,
    categories: list[str],
    output_ext: str = ".html",
    front_slug: str | None = None,
) -> str:
    """Compute the URL of a post.

    Args:
        style: Site-level permalink setting
        permalink: Front-matter permalink (wins when set)
        post_date: Front-matter date, or the date from the filename
        slug: Title part of the filename (2024-01-02-<slug>.md)
        categories: Post categories in order
        output_ext: Extension of the rendered file
        front_slug: Front-matter `slug` value
    """
    template = permalink or permalink_template(style)
    moment = post_date if isinstance(post_date, datetime) else datetime(
        post_date.year, post_date.month, post_date.day
    )
    title = slugify(front_slug or slug, mode="pretty", cased=True)
    seen: list[str] = []
    for category in categories:
        lowered = str(category).lower()
        if lowered not in seen:
            seen.append(lowered)

    placeholders = {
        "year": f"{moment.year:04d}",
        "short_year": f"{moment.year % 100:02d}",
        "month": f"{moment.month:02d}",
        "i_month": str(moment.month),
        "short_month": moment.strftime("%b"),
        "long_month": moment.strftime("%B"),
        "day": f"{moment.day:02d}",
        "i_day": str(moment.day),
        "y_day": moment.strftime("%j"),
        "week": moment.strftime("%V"),
        "short_day": moment.strftime("%a"),
        "long_day": moment.strftime("%A"),
        "hour": moment.strftime("%H"),
        "minute": moment.strftime("%M"),
        "second": moment.strftime("%S"),
        "title": title,
        "slug": slugify(front_slug or slug),
        "name": slugify(slug),
        "categories": "/".join(seen),
        "output_ext": output_ext,
    }
    return expand(template, placeholders)


def page_url(
    *,
    style: str | None,
    permalink: str | None,
    rel_path: str,
    output_ext: str,
) -> str:
    """Compute the URL of a page.

    Args:
        style: Site-level permalink setting
        permalink: Front-matter permalink (wins when set)
        rel_path: Source path relative to the site root, POSIX style
        output_ext: ".html" for Markdown and HTML, ".css" for Sass, otherwise the source extension
    """
    directory, filename = posixpath.split(rel_path)
    basename = posixpath.splitext(filename)[0]
    placeholders = {
        "path": directory,
        "basename": basename,
        "output_ext": output_ext,
    }
    if permalink:
        return expand(permalink, placeholders)

    if output_ext != ".html":
        template = "/:path/:basename:output_ext"
    elif basename == "index":
        template = "/:path/"
    else:
        template = "/:path/:basename" + permalink_suffix(style)
    return expand(template, placeholders)


def collection_url(
    *,
    label: str,
    permalink: str | None,
    rel_path: str,
    output_ext: str,
    front_slug: str | None = None,
) -> str:
    """Compute the URL of a collection document.

    Args:
        label: Collection name ("tabs" for _tabs/)
        permalink: Front-matter or collection-level permalink template
        rel_path: Path relative to the collection directory
        output_ext: Extension of the rendered file
        front_slug: Front-matter `slug` value
    """
    without_ext = posixpath.splitext(rel_path)[0]
    basename = posixpath.basename(without_ext)
    placeholders = {
        "collection": label,
        "path": without_ext,
        "name": slugify(basename),
        "title": slugify(front_slug or basename, mode="pretty", cased=True),
        "slug": slugify(front_slug or basename),
        "output_ext": output_ext,
    }
    url = expand(permalink or COLLECTION_DEFAULT, placeholders)
    if url.endswith("/index.html"):
        url = url[: -len("index.html")]
    return url
