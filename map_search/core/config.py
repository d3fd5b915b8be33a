"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    mapbox_access_token: str
    database_url: str
    locale: str = "en"
    debounce_ms: int = 300
    source_timeout_seconds: float = 6.0
    worker_port: int = 9000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    mapbox_access_token = os.getenv("MAPBOX_ACCESS_TOKEN", "")
    database_url = os.getenv("DATABASE_URL", "")
    locale = (os.getenv("SEARCH_LOCALE") or "en").strip().lower()
    debounce_ms = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
    source_timeout_seconds = float(os.getenv("SOURCE_TIMEOUT_SECONDS", "6"))
    worker_port = int(os.getenv("WORKER_PORT", "9000"))

    if not database_url:
        logger.warning("DATABASE_URL is not set; local POI search will return no results.")
    if not mapbox_access_token:
        logger.warning("MAPBOX_ACCESS_TOKEN is not configured; Mapbox requests will fail.")

    return Settings(
        mapbox_access_token=mapbox_access_token,
        database_url=database_url,
        locale=locale,
        debounce_ms=debounce_ms,
        source_timeout_seconds=source_timeout_seconds,
        worker_port=worker_port,
    )
