# geogrid/app_config.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

from geogrid.places_client import PlacesClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


@dataclass(frozen=True)
class AppSettings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    google_api_key: Optional[str] = None
    default_grid_size: int = 13
    default_distance_km: float = 2.5
    palette: str = "dashboard"
    log_level: str = "INFO"


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default


def load_settings() -> AppSettings:
    # ✅ Load .env file
    load_dotenv()
    return AppSettings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY"),
        google_api_key=os.getenv("GOOGLE_PLACES_API_KEY") or os.getenv("GOOGLE_MAPS_API_KEY"),
        default_grid_size=_env_number("GEOGRID_DEFAULT_SIZE", 13, int),
        default_distance_km=_env_number("GEOGRID_DEFAULT_DISTANCE_KM", 2.5, float),
        palette=os.getenv("GEOGRID_PALETTE", "dashboard"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def setup_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, datefmt="%H:%M:%S")
    logger.debug("Logging initialized at %s", level)


def get_supabase(settings: AppSettings) -> Client:
    if not settings.supabase_url or not settings.supabase_key:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY in environment.")
    logger.debug("Supabase URL: %s", settings.supabase_url)
    return create_client(settings.supabase_url, settings.supabase_key)


def get_places_client(settings: AppSettings) -> Optional[PlacesClient]:
    if not settings.google_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY not set; Places lookups are disabled.")
        return None
    return PlacesClient(settings.google_api_key)
