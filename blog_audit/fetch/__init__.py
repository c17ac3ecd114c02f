"""
External link fetching.

Checks http(s) links with httpx and caches successful results.
"""

from .checker import LinkStatus, check_external, check_external_async, check_url
from .cache import LinkCache

__all__ = [
    "LinkStatus",
    "LinkCache",
    "check_external",
    "check_external_async",
    "check_url",
]
