"""
Exceptions raised by Blog Audit.

Content problems in the audited site are reported as findings, never raised.
These exceptions cover misuse of the tool itself: unreadable configuration,
a missing site directory, or a site config that cannot be parsed.
"""

from __future__ import annotations


class BlogAuditError(Exception):
    """Base class for all errors that abort an audit run."""


class ConfigError(BlogAuditError):
    """The audit configuration file or a configuration value is invalid."""


class SiteError(BlogAuditError):
    """The site directory or its _config.yml cannot be used."""


class ManifestError(BlogAuditError):
    """The Gemfile exists but cannot be read."""


class FrontMatterError(BlogAuditError):
    """A front-matter block is not a valid YAML mapping.

    Attributes:
        line: 1-based line in the source file where the problem was detected
    """

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line
