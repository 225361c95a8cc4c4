import os
from pathlib import Path

# Basic settings helper to read environment configuration.

DEFAULT_DB_PATH = Path(__file__).resolve().parent / "data" / "places.sqlite"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.MAPBOX_TOKEN: str | None = os.getenv("MAPBOX_TOKEN") or None
        self.MAPBOX_GEOCODING_URL: str = os.getenv(
            "MAPBOX_GEOCODING_URL",
            "https://api.mapbox.com/geocoding/v5/mapbox.places",
        )
        self.GEOCODE_TIMEOUT_SECONDS: float = _as_float(os.getenv("GEOCODE_TIMEOUT_SECONDS"), 5.0)
        self.GEOCODE_CANDIDATE_LIMIT: int = _as_int(os.getenv("GEOCODE_CANDIDATE_LIMIT"), 5)
        self.GEOCODE_SAFE_ID_MAX_DISTANCE_M: float = _as_float(
            os.getenv("GEOCODE_SAFE_ID_MAX_DISTANCE_M"), 75.0
        )
        self.PLACES_DATABASE_URL: str = os.getenv(
            "PLACES_DATABASE_URL", f"sqlite+aiosqlite:///{DEFAULT_DB_PATH}"
        )
        self.PLACES_SQL_ECHO: bool = _as_bool(os.getenv("PLACES_SQL_ECHO"), False)


settings = Settings()
