"""
Thin HTTP client for the Geoapify Places / Geocoding APIs (plus optional
Overpass lookups).

Every call gets its own timeout and never retries. Upstream trouble (non-2xx,
network error, timeout, bad JSON) is logged and reported as "no results";
only a missing API key escapes as an exception.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import requests

from settings import Settings, settings as default_settings


GEOAPIFY_PLACES_BASE = "https://api.geoapify.com/v2/places"
GEOAPIFY_GEOCODE_SEARCH_BASE = "https://api.geoapify.com/v1/geocode/search"
GEOAPIFY_REVERSE_BASE = "https://api.geoapify.com/v1/geocode/reverse"
GEOAPIFY_PLACE_DETAILS_BASE = "https://api.geoapify.com/v2/place-details"
OVERPASS_BASES = (
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.nchc.org.tw/api/interpreter",
)

# Travel-relevant categories requested from the nearby search
NEARBY_CATEGORIES = (
    "tourism",
    "tourism.attraction",
    "tourism.sights",
    "accommodation",
    "catering",
    "entertainment.museum",
    "entertainment.culture.gallery",
    "leisure.park",
    "natural",
    "beach",
    "heritage",
    "religion.place_of_worship",
)

MIN_RADIUS_M = 10.0
MAX_RADIUS_M = 2000.0
NEARBY_LIMIT = 20
TEXT_SEARCH_LIMIT = 10
OVERPASS_TIMEOUT_S = 10.0


def _clamp_radius(radius_m: float) -> float:
    return max(MIN_RADIUS_M, min(MAX_RADIUS_M, float(radius_m)))


def _format_radius(radius_m: float) -> str:
    r = _clamp_radius(radius_m)
    return str(int(r)) if r.is_integer() else str(r)


class GeoapifyClient:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        config: Optional[Settings] = None,
    ):
        self.session = session or requests.Session()
        self.config = config or default_settings
        self.logger = logging.getLogger(__name__)

    def api_key(self) -> str:
        """Raises PlacesConfigError when the key is not configured."""
        return self.config.require_geoapify_api_key()

    def _get_json(
        self,
        stage: str,
        url: str,
        params: Dict[str, str],
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Any]:
        if cancel_event is not None and cancel_event.is_set():
            self.logger.debug("GeoapifyClient.%s: skipped, resolution cancelled", stage)
            return None
        try:
            resp = self.session.get(url, params=params, timeout=timeout)
        except requests.RequestException as exc:
            self.logger.warning("GeoapifyClient.%s: request failed: %s", stage, exc.__class__.__name__)
            return None
        if resp is None:
            return None
        if not resp.ok:
            self.logger.warning("GeoapifyClient.%s: upstream status %s", stage, resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError as exc:
            self.logger.warning("GeoapifyClient.%s: invalid JSON: %s", stage, exc)
            return None

    def search_nearby(
        self,
        lat: float,
        lon: float,
        radius_m: Optional[float] = None,
        categories=NEARBY_CATEGORIES,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[dict]:
        """Nearby POI search; returns raw GeoJSON features ([] on any upstream failure)."""
        radius = radius_m if radius_m else self.config.PLACES_SEARCH_RADIUS_M
        params = {
            "apiKey": self.api_key(),
            "categories": ",".join(categories),
            "filter": f"circle:{lon},{lat},{_format_radius(radius)}",
            "bias": f"proximity:{lon},{lat}",
            "limit": str(NEARBY_LIMIT),
        }
        data = self._get_json(
            "search_nearby", GEOAPIFY_PLACES_BASE, params, self.config.nearby_timeout_s, cancel_event
        )
        features = data.get("features") if isinstance(data, dict) else None
        features = features if isinstance(features, list) else []
        self.logger.debug(
            "GeoapifyClient.search_nearby: lat=%.6f lon=%.6f radius_m=%.1f got %d features",
            lat,
            lon,
            _clamp_radius(radius),
            len(features),
        )
        return features

    def reverse_geocode(
        self,
        lat: float,
        lon: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[dict]:
        """Reverse geocode a point; returns the first result or None."""
        params = {
            "apiKey": self.api_key(),
            "lat": str(lat),
            "lon": str(lon),
            "format": "json",
            "lang": "en",
        }
        data = self._get_json(
            "reverse_geocode", GEOAPIFY_REVERSE_BASE, params, self.config.nearby_timeout_s, cancel_event
        )
        results = data.get("results") if isinstance(data, dict) else None
        if isinstance(results, list) and results and isinstance(results[0], dict):
            return results[0]
        return None

    def place_details(
        self,
        place_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[dict]:
        """Fetch the details feature for a place id (falls back to the first feature)."""
        params = {
            "apiKey": self.api_key(),
            "id": place_id,
            "features": "details",
            "lang": "en",
        }
        data = self._get_json(
            "place_details",
            GEOAPIFY_PLACE_DETAILS_BASE,
            params,
            self.config.PLACE_DETAILS_TIMEOUT_S,
            cancel_event,
        )
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            return None
        features = [f for f in features if isinstance(f, dict)]
        for feature in features:
            props = feature.get("properties")
            if isinstance(props, dict) and props.get("feature_type") == "details":
                return feature
        return features[0] if features else None

    def search_by_text(
        self,
        query: str,
        near_lat: float,
        near_lon: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[dict]:
        """Free-text geocoding biased toward (near_lat, near_lon)."""
        params = {
            "apiKey": self.api_key(),
            "text": query,
            "bias": f"proximity:{near_lon},{near_lat}",
            "format": "json",
            "limit": str(TEXT_SEARCH_LIMIT),
            "lang": "en",
        }
        data = self._get_json(
            "search_by_text",
            GEOAPIFY_GEOCODE_SEARCH_BASE,
            params,
            self.config.TEXT_SEARCH_TIMEOUT_S,
            cancel_event,
        )
        results = data.get("results") if isinstance(data, dict) else None
        return [r for r in results if isinstance(r, dict)] if isinstance(results, list) else []

    def overpass_website_elements(
        self,
        lat: float,
        lon: float,
        radius_m: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[dict]:
        """
        OSM objects carrying a website tag around a point.

        Public Overpass mirrors are flaky, so each is tried in order until one
        answers with a 2xx, all within one OVERPASS_TIMEOUT_S budget.
        """
        query = (
            "[out:json][timeout:8];\n"
            "(\n"
            f'  nwr(around:{int(radius_m)},{lat},{lon})["website"];\n'
            f'  nwr(around:{int(radius_m)},{lat},{lon})["contact:website"];\n'
            ");\n"
            "out tags center 80;"
        )
        # One deadline shared by all mirrors
        deadline = time.monotonic() + OVERPASS_TIMEOUT_S
        for base in OVERPASS_BASES:
            if cancel_event is not None and cancel_event.is_set():
                return []
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.warning("GeoapifyClient.overpass: deadline exceeded before %s", base)
                return []
            try:
                resp = self.session.post(
                    base,
                    data={"data": query},
                    headers={"Accept": "application/json"},
                    timeout=remaining,
                )
            except requests.RequestException as exc:
                self.logger.warning("GeoapifyClient.overpass: %s failed: %s", base, exc.__class__.__name__)
                continue
            if resp is None or not resp.ok:
                continue
            try:
                data = resp.json()
            except ValueError:
                return []
            elements = data.get("elements") if isinstance(data, dict) else None
            return [e for e in elements if isinstance(e, dict)] if isinstance(elements, list) else []
        return []


_default_geoapify_client: Optional[GeoapifyClient] = None


def get_default_geoapify_client() -> GeoapifyClient:
    global _default_geoapify_client
    if _default_geoapify_client is None:
        _default_geoapify_client = GeoapifyClient()
    return _default_geoapify_client
