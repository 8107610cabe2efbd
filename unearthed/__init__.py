"""
Unearthed

Fills the official archaeological find report form from a find record,
resolving address and municipality from the find position and appending a
localized summary page with photos.
"""

__version__ = "1.0.0"

from unearthed.core.engine import ExportEngine
from unearthed.core.types import ExportResult, ExportState, FindRecord

__all__ = [
    "ExportEngine",
    "ExportResult",
    "ExportState",
    "FindRecord",
]
