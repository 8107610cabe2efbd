"""
Page renderers for the export.

Renderers draw the pages appended after the official form.
"""

from unearthed.renderers.summary_renderer import SummaryRenderer

__all__ = [
    "SummaryRenderer",
]
