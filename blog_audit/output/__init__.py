"""
Report output in text, Markdown, JSON and HTML.
"""

from .renderer import print_report, render_report, write_report

__all__ = ["print_report", "render_report", "write_report"]
