"""
Configuration management using pydantic-settings.
Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Configuration
    APP_NAME: str = "Unearthed"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FILE: str = "logs/app.log"  # empty string disables the file channel

    # UI defaults (overridden by the local store once the user picks something)
    DEFAULT_LANGUAGE: Literal["en", "no", "es"] = "no"
    DEFAULT_COORD_SYSTEM: Literal["utm32", "wgs84"] = "utm32"

    # Template and output
    TEMPLATE_PATH: str = "assets/Funnskjema-unlocked.pdf"  # local path or http(s) URL
    OUTPUT_DIR: str = "output/export"
    OUTPUT_FILENAME: str = "funnskjema-utfylt.pdf"

    # Binding table and labels; empty uses the YAML shipped inside the package
    EXPORT_CONFIG_DIR: str = ""
    FORM_ID: str = "funnskjema_v1"

    # Device-local storage (remembered finder, language, coordinate system)
    LOCAL_STORAGE_DIR: str = ".unearthed"

    # Geonorge lookups
    GEONORGE_ADDRESS_URL: str = "https://ws.geonorge.no/adresser/v1/punktsok"
    GEONORGE_MUNICIPALITY_URL: str = "https://ws.geonorge.no/kommuneinfo/v1/punkt"
    ADDRESS_SEARCH_RADIUS_M: int = 10000
    ADDRESS_RESULTS_PER_PAGE: int = 5
    LOOKUP_TIMEOUT_SECONDS: float = 15.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
