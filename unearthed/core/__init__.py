"""
Core components: types, exceptions and the export engine.
"""

from unearthed.core.exceptions import (
    ExportException,
    TemplateLoadException,
    ConfigurationException,
    MappingException,
    FieldNotFoundException,
    FieldTypeMismatchException,
    UnsupportedImageException,
)

__all__ = [
    "ExportException",
    "TemplateLoadException",
    "ConfigurationException",
    "MappingException",
    "FieldNotFoundException",
    "FieldTypeMismatchException",
    "UnsupportedImageException",
]
