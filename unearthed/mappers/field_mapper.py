"""
Field Mapper for the find report form.

Maps domain values onto the fixed template: the declarative binding table
(logical name -> AcroForm field name), area type -> checkbox, and the
heuristic split of a free-text address into street / postcode / place.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Dict, Optional
import logging

import yaml

from shared.utils.config import settings
from unearthed.core.exceptions import MappingException
from unearthed.core.types import ParsedAddress

logger = logging.getLogger(__name__)

TEXT = "text"
CHECKBOX = "checkbox"


@dataclass
class FieldBinding:
    """
    Binding table for one template revision.

    Attributes:
        form_id: Binding identifier (e.g. "funnskjema_v1")
        fields: logical name -> text field name
        checkboxes: logical name -> checkbox field name
        arealtype_checkboxes: normalized area type -> checkbox field name
    """
    form_id: str
    fields: Dict[str, str] = field(default_factory=dict)
    checkboxes: Dict[str, str] = field(default_factory=dict)
    arealtype_checkboxes: Dict[str, str] = field(default_factory=dict)

    def text_field(self, logical_name: str) -> str:
        try:
            return self.fields[logical_name]
        except KeyError:
            raise MappingException(f"No text field bound to '{logical_name}'")

    def checkbox(self, logical_name: str) -> str:
        try:
            return self.checkboxes[logical_name]
        except KeyError:
            raise MappingException(f"No checkbox bound to '{logical_name}'")

    def map_arealtype(self, text: str) -> Optional[str]:
        return map_arealtype(text, self.arealtype_checkboxes)


def export_config_dir() -> Path:
    """
    Directory holding the binding tables and labels.

    EXPORT_CONFIG_DIR overrides the YAML shipped in the unearthed package.
    """
    if settings.EXPORT_CONFIG_DIR:
        return Path(settings.EXPORT_CONFIG_DIR)
    return Path(str(resources.files("unearthed") / "config" / "export"))


def binding_path(form_id: Optional[str] = None) -> Path:
    form_id = form_id or settings.FORM_ID
    return export_config_dir() / "mappings" / f"{form_id}.yaml"


def load_binding(path: Path) -> FieldBinding:
    """
    Load a binding table from YAML.

    Raises:
        MappingException: If the file is missing a required section
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise MappingException(f"Failed to load binding {path}: {e}") from e

    for section in ("fields", "checkboxes", "arealtype_checkboxes"):
        if not isinstance(config.get(section), dict):
            raise MappingException(f"Binding {path} missing '{section}' section")

    binding = FieldBinding(
        form_id=str(config.get("form_id") or Path(path).stem),
        fields={str(k): str(v) for k, v in config["fields"].items()},
        checkboxes={str(k): str(v) for k, v in config["checkboxes"].items()},
        arealtype_checkboxes={
            str(k).strip().lower(): str(v) for k, v in config["arealtype_checkboxes"].items()
        },
    )
    logger.info(
        f"Loaded binding {binding.form_id}: {len(binding.fields)} fields, "
        f"{len(binding.checkboxes) + len(set(binding.arealtype_checkboxes.values()))} checkboxes"
    )
    return binding


@lru_cache(maxsize=4)
def get_binding(form_id: Optional[str] = None) -> FieldBinding:
    """Cached binding for the configured (or given) form id."""
    return load_binding(binding_path(form_id))


def map_arealtype(text: str, table: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Checkbox for an area type, or None to leave every area box unchecked.

    Matching ignores case and surrounding whitespace; "å" may be written "a".

    Example:
        >>> map_arealtype(" Åker ") == map_arealtype("AKER")
        True
    """
    if not text:
        return None
    if table is None:
        table = get_binding().arealtype_checkboxes

    key = text.strip().lower()
    return table.get(key) or table.get(key.replace("å", "a"))


def parse_combined_address(text: str) -> ParsedAddress:
    """
    Split "<street>, <postcode> <place>" into the three form fields.

    Best-effort and lossy: the form collects a single address line while
    the official PDF wants three fields.

    Example:
        >>> parse_combined_address("Storgata 5, 5073 BERGEN")
        ParsedAddress(street='Storgata 5', postal_code='5073', place='BERGEN')
    """
    text = (text or "").strip()
    if not text:
        return ParsedAddress()

    comma = text.rfind(",")
    if comma == -1:
        if text.isdigit():
            return ParsedAddress(postal_code=text)
        return ParsedAddress(street=text)

    street = text[:comma].strip()
    remainder = text[comma + 1:].strip()
    if not remainder:
        return ParsedAddress(street=street)

    head, _, tail = remainder.partition(" ")
    if tail and head.isdigit():
        return ParsedAddress(street=street, postal_code=head, place=tail.strip())
    if remainder.isdigit():
        return ParsedAddress(street=street, postal_code=remainder)
    return ParsedAddress(street=street, place=remainder)
