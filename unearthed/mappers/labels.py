"""
Localized labels for the summary page and the aggregate notes field.
"""

from functools import lru_cache
from typing import Dict, Optional
import logging

import yaml

from shared.utils.config import settings
from unearthed.core.exceptions import ConfigurationException
from unearthed.core.types import SUPPORTED_LANGUAGES
from unearthed.mappers.field_mapper import export_config_dir

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"


@lru_cache(maxsize=1)
def load_label_tables() -> Dict[str, Dict[str, str]]:
    """All label tables keyed by language code."""
    path = export_config_dir() / "labels.yaml"
    try:
        with open(path, "r", encoding="utf-8") as f:
            tables = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationException(f"Failed to load labels from {path}: {e}") from e

    missing = [lang for lang in SUPPORTED_LANGUAGES if lang not in tables]
    if missing:
        raise ConfigurationException(f"labels.yaml has no table for: {', '.join(missing)}")
    return {str(lang): {str(k): str(v) for k, v in table.items()} for lang, table in tables.items()}


def get_labels(lang: Optional[str] = None) -> Dict[str, str]:
    """
    Labels for a language, falling back to English for unknown codes
    and for keys a translation is missing.
    """
    tables = load_label_tables()
    lang = lang or settings.DEFAULT_LANGUAGE
    if lang not in tables:
        logger.warning(f"No labels for language '{lang}', using '{FALLBACK_LANGUAGE}'")
        lang = FALLBACK_LANGUAGE
    return {**tables[FALLBACK_LANGUAGE], **tables[lang]}
