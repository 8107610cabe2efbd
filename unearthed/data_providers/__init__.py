"""
Data providers for the export.

Providers fetch what the find record does not carry itself: registry
lookups for the find position and the photo bytes.
"""

from unearthed.data_providers.geonorge_provider import GeonorgeProvider
from unearthed.data_providers.photo_reader import read_photos

__all__ = [
    "GeonorgeProvider",
    "read_photos",
]
