"""
Check families.

Each module turns the site model into findings for one group of rules.
"""

from .fences import check_fences
from .front_matter import check_front_matter
from .links import ExternalRef, check_links, external_findings
from .manifest import check_manifest

__all__ = [
    "ExternalRef",
    "check_fences",
    "check_front_matter",
    "check_links",
    "check_manifest",
    "external_findings",
]
