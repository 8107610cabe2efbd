"""
Helper utility functions.
"""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


def safe_get(data: dict, *keys: str, default: Any = None) -> Any:
    """
    Safely get nested dictionary value.

    Args:
        data: Dictionary to query
        *keys: Sequence of keys to traverse
        default: Default value if key not found

    Returns:
        Value at the nested key or default

    Example:
        safe_get({"a": {"b": {"c": 1}}}, "a", "b", "c")  # Returns 1
        safe_get({"a": {"b": {}}}, "a", "b", "c", default=0)  # Returns 0
    """
    current = data
    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current


def as_text(value: Any) -> str:
    """
    Coerce a loosely typed input value to a stripped string.

    None becomes "", numbers keep their natural representation
    (registry responses mix strings and ints for gnr/bnr and postcodes).
    """
    if value is None:
        return ""
    return str(value).strip()


TRUE_WORDS = {"1", "true", "yes", "y", "on", "ja", "j", "si", "sí"}


def as_flag(value: Any) -> bool:
    """
    Coerce a loosely typed yes/no input to a bool.

    Strings are matched against TRUE_WORDS, so a quoted "false" from a
    YAML or JSON record stays False.
    """
    if isinstance(value, str):
        return value.strip().lower() in TRUE_WORDS
    return bool(value)


def truncate_text(text: str, max_length: int = 60, suffix: str = "...") -> str:
    """
    Truncate text to maximum length (for log previews).

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def serialize_for_json(obj: Any) -> Any:
    """
    Serialize object for JSON storage.
    Handles dataclasses, enums, dates and other non-serializable types.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable object
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, (set, frozenset)):
        return list(obj)
    elif isinstance(obj, bytes):
        return f"<{len(obj)} bytes>"
    else:
        return str(obj)
