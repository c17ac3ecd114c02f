"""
JSONL cache of external link results.

Each successful check is appended as a JSON line with a timestamp. On load
the newest line per URL wins and lines older than the TTL are ignored, so a
broken link is always re-checked on the next run. A file holding stale or
unreadable lines is rewritten with only the live entries.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
from pathlib import Path
from typing import Any

from .checker import LinkStatus


class LinkCache:
    """Tracks checked URLs in a JSONL file.

    Attributes:
        cache_dir: Directory where the cache file is stored
        enabled: Whether the cache is read and written
        ttl_days: Entries older than this are ignored (None keeps them forever)
        path: Full path to the cache file
    """

    def __init__(
        self,
        cache_dir: Path,
        enabled: bool = True,
        ttl_days: int | None = 7,
        filename: str = "links.jsonl",
    ):
        self.cache_dir = cache_dir
        self.enabled = enabled
        self.ttl_days = ttl_days
        self.path = cache_dir / filename
        self._entries: dict[str, dict[str, Any]] | None = None

    def get(self, url: str) -> LinkStatus | None:
        """Return a fresh cached result for a URL, if any."""
        if not self.enabled:
            return None
        entry = self._load().get(url)
        if entry is None:
            return None
        return LinkStatus(
            url=url,
            status_code=entry.get("status_code"),
            ok=True,
            error=None,
            from_cache=True,
        )

    def put(self, status: LinkStatus) -> None:
        """Append a successful result; failures are never cached."""
        if not self.enabled or not status.ok:
            return
        payload = {
            "url": status.url,
            "status_code": status.status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=True))
            handle.write("\n")
        self._load()[status.url] = payload

    def _load(self) -> dict[str, dict[str, Any]]:
        if self._entries is not None:
            return self._entries
        self._entries = {}
        if not self.path.exists():
            return self._entries

        cutoff = None
        if self.ttl_days is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(days=self.ttl_days)

        stale = 0
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                    stamp = datetime.fromisoformat(entry["timestamp"])
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    stale += 1
                    continue
                if stamp.tzinfo is None:
                    stamp = stamp.replace(tzinfo=timezone.utc)
                url = entry.get("url")
                if not isinstance(url, str) or (cutoff is not None and stamp < cutoff):
                    stale += 1
                    continue
                if url in self._entries:
                    stale += 1
                self._entries[url] = entry

        if stale:
            self._compact()
        return self._entries

    def _compact(self) -> None:
        """Rewrite the file with one fresh line per URL."""
        lines = [json.dumps(entry, ensure_ascii=True) + "\n" for entry in (self._entries or {}).values()]
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text("".join(lines), encoding="utf-8")
        tmp_path.replace(self.path)
