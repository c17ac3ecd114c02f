"""
blog-audit: a static auditor for Jekyll blog source trees.

Checks front-matter, internal and external links, code fences and the
Gemfile of a Jekyll site without building it.
"""

__version__ = "0.1.0"
