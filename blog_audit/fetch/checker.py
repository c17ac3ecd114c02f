"""
External link checker.

Checks http(s) URLs concurrently with httpx, bounded by a semaphore. Each URL
is tried with HEAD first and falls back to GET for servers that reject HEAD.
Network errors and 5xx answers are retried with a linear backoff; 404, 410
and 429 are final.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Callable

import httpx

from ..config import LinksConfig
from ..utils.logging import log_event, truncate_text

if TYPE_CHECKING:
    from .cache import LinkCache


FINAL_STATUSES = {404, 410, 429}


@dataclass
class LinkStatus:
    """Result of probing one URL.

    Attributes:
        url: The URL that was checked
        status_code: Final HTTP status, or None if no response was received
        ok: True for 2xx/3xx answers
        error: Error message for network-level failures
        from_cache: Whether the result was served from the link cache
    """
    url: str
    status_code: int | None
    ok: bool
    error: str | None = None
    from_cache: bool = False


async def check_url(
    client: httpx.AsyncClient,
    url: str,
    retries: int,
    semaphore: asyncio.Semaphore,
) -> LinkStatus:
    """Check one URL with retry logic.

    Args:
        client: Shared async HTTP client
        url: The URL to check
        retries: Number of retry attempts after the initial failure
        semaphore: Bounds the number of in-flight requests

    Returns:
        LinkStatus describing the final outcome
    """
    last_error: str | None = None
    last_status: int | None = None

    for attempt in range(retries + 1):
        try:
            async with semaphore:
                resp = await client.head(url)
                if resp.status_code == 405 or (
                    resp.status_code >= 400 and resp.status_code not in FINAL_STATUSES
                ):
                    # Some servers only answer GET properly
                    resp = await client.get(url)
            code = resp.status_code
            if code < 400:
                return LinkStatus(url=url, status_code=code, ok=True)
            last_status = code
            last_error = None
            if code in FINAL_STATUSES or code < 500:
                break
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            last_status = None
            last_error = f"{type(exc).__name__}: {exc}"

        if attempt < retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))

    return LinkStatus(url=url, status_code=last_status, ok=False, error=last_error)


async def check_external_async(
    urls: list[str],
    cfg: LinksConfig,
    cache: LinkCache | None = None,
    logger: logging.Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    on_done: Callable[[LinkStatus], None] | None = None,
) -> dict[str, LinkStatus]:
    """Check unique URLs, serving fresh results from the cache."""
    results: dict[str, LinkStatus] = {}
    pending: list[str] = []
    for url in dict.fromkeys(urls):
        cached = cache.get(url) if cache is not None else None
        if cached is not None:
            results[url] = cached
            log_event(logger, "Link cache hit", event="link_cache_hit", url=url)
            if on_done is not None:
                on_done(cached)
        else:
            pending.append(url)

    if not pending:
        return results

    semaphore = asyncio.Semaphore(max(1, cfg.concurrency))
    async with httpx.AsyncClient(
        timeout=cfg.timeout_seconds,
        headers={"User-Agent": cfg.user_agent},
        follow_redirects=True,
        trust_env=cfg.trust_env,
        transport=transport,
    ) as client:

        async def run(url: str) -> LinkStatus:
            status = await check_url(client, url, cfg.retries, semaphore)
            log_event(
                logger,
                "Link checked",
                event="link_checked",
                url=url,
                status_code=status.status_code,
                ok=status.ok,
                error=truncate_text(status.error) if status.error else None,
            )
            if on_done is not None:
                on_done(status)
            return status

        statuses = await asyncio.gather(*(run(url) for url in pending))

    for status in statuses:
        results[status.url] = status
        if cache is not None:
            cache.put(status)
    return results


def check_external(
    urls: list[str],
    cfg: LinksConfig,
    cache: LinkCache | None = None,
    logger: logging.Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    on_done: Callable[[LinkStatus], None] | None = None,
) -> dict[str, LinkStatus]:
    """Synchronous wrapper around check_external_async."""
    return asyncio.run(check_external_async(urls, cfg, cache, logger, transport, on_done))
