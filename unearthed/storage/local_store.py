"""
Device-local key/value storage.

Holds the few things remembered between exports: the last finder's contact
details, the chosen language and the preferred coordinate system. Values
are kept as JSON in a single file; a missing or corrupt file reads as empty.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from shared.utils.config import settings
from shared.utils.logger import setup_logger
from unearthed.core.types import COORD_SYSTEMS, SUPPORTED_LANGUAGES, Person

logger = setup_logger(__name__)

FINDER_KEY = "unearthed-finder"
LANG_KEY = "unearthed-lang"
COORD_SYSTEM_KEY = "unearthed-coord-system"

STORE_FILENAME = "store.json"


class LocalStore:
    """
    JSON-file backed store with localStorage-like semantics.

    Example:
        >>> store = LocalStore(".unearthed")
        >>> store.remember_finder(Person(name="Kari Nordmann"))
        >>> store.remembered_finder().name
        'Kari Nordmann'
    """

    def __init__(self, directory: Optional[str] = None):
        self.path = Path(directory or settings.LOCAL_STORAGE_DIR) / STORE_FILENAME

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable local store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    # Remembered finder

    def remembered_finder(self) -> Optional[Person]:
        data = self.get_item(FINDER_KEY)
        if not isinstance(data, dict):
            return None
        return Person.from_dict(data)

    def remember_finder(self, finder: Person) -> None:
        """Overwrite the remembered finder (called at every export start)."""
        self.set_item(FINDER_KEY, {
            "name": finder.name,
            "address": finder.address,
            "phone": finder.phone,
            "email": finder.email,
        })
        logger.debug("Remembered finder details")

    # Preferences

    def language(self) -> str:
        lang = self.get_item(LANG_KEY)
        return lang if lang in SUPPORTED_LANGUAGES else settings.DEFAULT_LANGUAGE

    def set_language(self, lang: str) -> None:
        if lang not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language '{lang}'")
        self.set_item(LANG_KEY, lang)

    def coord_system(self) -> str:
        system = self.get_item(COORD_SYSTEM_KEY)
        return system if system in COORD_SYSTEMS else settings.DEFAULT_COORD_SYSTEM

    def set_coord_system(self, system: str) -> None:
        if system not in COORD_SYSTEMS:
            raise ValueError(f"Unsupported coordinate system '{system}'")
        self.set_item(COORD_SYSTEM_KEY, system)


def prefill_finder(record_finder: Person, remembered: Optional[Person]) -> Person:
    """Fill empty finder fields from the remembered finder; typed values win."""
    if remembered is None:
        return record_finder
    return Person(
        name=record_finder.name or remembered.name,
        address=record_finder.address or remembered.address,
        phone=record_finder.phone or remembered.phone,
        email=record_finder.email or remembered.email,
    )
