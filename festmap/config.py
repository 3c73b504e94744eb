from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import os
from pathlib import Path
from zoneinfo import ZoneInfo

from festmap.env_utils import load_env_file

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_FILE = BASE_DIR / "data" / "merchants.json"
DEFAULT_TIMEZONE = "Europe/Madrid"
DEFAULT_TILE_URL = "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png"


@dataclass(slots=True)
class Settings:
    data_source: str = str(DEFAULT_DATA_FILE)
    timezone: str = DEFAULT_TIMEZONE
    tile_url: str = DEFAULT_TILE_URL
    map_center: tuple[float, float] = (41.3594, 2.1056)
    zoom_initial: int = 13
    zoom_min: int = 12
    zoom_max: int = 18


def load_settings(base_dir: Path = BASE_DIR) -> Settings:
    load_env_file(base_dir)
    settings = Settings()
    settings.data_source = os.getenv("FESTMAP_DATA", "").strip() or settings.data_source
    settings.timezone = os.getenv("FESTMAP_TIMEZONE", "").strip() or settings.timezone
    settings.tile_url = os.getenv("FESTMAP_TILE_URL", "").strip() or settings.tile_url
    return settings


def event_clock(settings: Settings) -> Callable[[], datetime]:
    """Wall clock in the event's local time zone."""
    zone = ZoneInfo(settings.timezone)

    def now() -> datetime:
        return datetime.now(zone)

    return now
