"""
Mappers from find-record values to form fields and localized labels.
"""

from unearthed.mappers.field_mapper import FieldBinding, get_binding, map_arealtype, parse_combined_address
from unearthed.mappers.labels import get_labels

__all__ = [
    "FieldBinding",
    "get_binding",
    "map_arealtype",
    "parse_combined_address",
    "get_labels",
]
