"""
Custom exceptions for the export pipeline.
"""


class ExportException(Exception):
    """Base exception for the export pipeline."""
    pass


class TemplateLoadException(ExportException):
    """Template could not be fetched or is not a fillable PDF. Fatal."""
    pass


class ConfigurationException(ExportException):
    """Exception raised for configuration errors."""
    pass


class MappingException(ExportException):
    """Exception raised when the field binding table is invalid."""
    pass


class FieldNotFoundException(ExportException):
    """The template has no field with the bound name."""

    def __init__(self, field_name: str):
        super().__init__(f"field '{field_name}' not in template")
        self.field_name = field_name


class FieldTypeMismatchException(ExportException):
    """The template field exists but is of another kind than the binding says."""

    def __init__(self, field_name: str, expected: str, actual: str):
        super().__init__(f"field '{field_name}' is {actual or 'untyped'}, expected {expected}")
        self.field_name = field_name


class UnsupportedImageException(ExportException):
    """Photo data is neither PNG nor JPEG."""
    pass
