import os
from pathlib import Path

from dotenv import load_dotenv

# Basic settings helper to read environment configuration.

# Load backend/.env (optional) before reading anything from the environment
load_dotenv(Path(__file__).resolve().parent / ".env")

DEFAULT_RESOLVE_TIMEOUT_MS = 3500
DEFAULT_SEARCH_RADIUS_M = 300.0


class PlacesConfigError(RuntimeError):
    """Raised when the place-data backend is not configured (e.g. missing API key)."""


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_positive_int(val: str | None, default: int) -> int:
    try:
        parsed = int(str(val).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _as_positive_float(val: str | None, default: float) -> float:
    try:
        parsed = float(str(val).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


class Settings:
    def __init__(self) -> None:
        self.PLACES_PROVIDER: str = (os.getenv("PLACES_PROVIDER") or "geoapify").strip().lower()
        self.GEOAPIFY_RESOLVE_TIMEOUT_MS: int = _as_positive_int(
            os.getenv("GEOAPIFY_RESOLVE_TIMEOUT_MS"), DEFAULT_RESOLVE_TIMEOUT_MS
        )
        self.PLACES_SEARCH_RADIUS_M: float = _as_positive_float(
            os.getenv("PLACES_SEARCH_RADIUS_M"), DEFAULT_SEARCH_RADIUS_M
        )
        self.PLACES_OVERPASS_WEBSITE_ENABLED: bool = _as_bool(
            os.getenv("PLACES_OVERPASS_WEBSITE_ENABLED"), False
        )
        # Fixed: detail lookups and text search are not tunable
        self.PLACE_DETAILS_TIMEOUT_S: float = 4.0
        self.TEXT_SEARCH_TIMEOUT_S: float = 4.0

    @property
    def nearby_timeout_s(self) -> float:
        return self.GEOAPIFY_RESOLVE_TIMEOUT_MS / 1000.0

    def require_geoapify_api_key(self) -> str:
        """Read the API key at call time so rotated/late-set keys are honored."""
        key = (os.getenv("GEOAPIFY_API_KEY") or "").strip()
        if not key:
            raise PlacesConfigError("Missing GEOAPIFY_API_KEY environment variable")
        return key


settings = Settings()
