"""
Places provider contract, the Geoapify implementation, and the registry.

Callers only see `PlacesProvider`; scoring and text formatting never depend
on a specific backend.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Protocol

from places.geo_utils import haversine_m
from places.geoapify_client import GeoapifyClient, get_default_geoapify_client
from places.normalizer import (
    candidate_from_geocode_result,
    candidates_from_features,
    looks_like_geoapify_place_id,
)
from places.places_enrichment import enrich_with_place_details, resolve_website_from_overpass
from places.places_types import PlaceCandidate, ResolutionResult
from places.scoring import select_best_candidate
from settings import settings

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"
DEFAULT_PROVIDER_ID = "geoapify"


class PlacesProvider(Protocol):
    """Common interface for place-data backends."""
    provider_id: str

    def resolve_place_by_lat_lon(
        self,
        lat: float,
        lon: float,
        user_hint_name: Optional[str] = None,
        search_radius_m: Optional[float] = None,
        max_distance_m: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        """Resolve the single best real-world place near a coordinate."""
        ...

    def search_place_by_text(
        self,
        query: str,
        near_lat: float,
        near_lon: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[PlaceCandidate]:
        """Search places by text, biased near a location."""
        ...

    def is_upstream_place_id(self, place_id: str) -> bool:
        """Whether an id is a real backend key (worth a detail lookup)."""
        ...


class GeoapifyPlacesProvider:
    provider_id = "geoapify"

    def __init__(self, client: Optional[GeoapifyClient] = None):
        self._client = client

    @property
    def client(self) -> GeoapifyClient:
        return self._client or get_default_geoapify_client()

    def is_upstream_place_id(self, place_id: str) -> bool:
        return looks_like_geoapify_place_id(place_id)

    def _nearby_candidates(
        self,
        lat: float,
        lon: float,
        search_radius_m: Optional[float],
        max_distance_m: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> List[PlaceCandidate]:
        features = self.client.search_nearby(lat, lon, radius_m=search_radius_m, cancel_event=cancel_event)
        candidates = candidates_from_features(features)
        if candidates and max_distance_m is not None:
            # Strict mode: a POI a block away is worse than the address at the pin
            candidates = [
                c for c in candidates if haversine_m(lat, lon, c.lat, c.lon) <= max_distance_m
            ]
        return candidates

    def _reverse_candidates(
        self,
        lat: float,
        lon: float,
        cancel_event: Optional[threading.Event],
    ) -> List[PlaceCandidate]:
        result = self.client.reverse_geocode(lat, lon, cancel_event=cancel_event)
        if result is None:
            return []
        cand = candidate_from_geocode_result(result, fallback_lat=lat, fallback_lon=lon)
        return [cand] if cand is not None else []

    def resolve_place_by_lat_lon(
        self,
        lat: float,
        lon: float,
        user_hint_name: Optional[str] = None,
        search_radius_m: Optional[float] = None,
        max_distance_m: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        # Fail fast on configuration before any network call
        self.client.api_key()

        candidates = self._nearby_candidates(lat, lon, search_radius_m, max_distance_m, cancel_event)
        if not candidates:
            candidates = self._reverse_candidates(lat, lon, cancel_event)

        if not candidates and cancel_event is not None and cancel_event.is_set():
            return ResolutionResult(place=None, candidates=[], chosen_reason=CANCELLED_REASON)

        distances = [haversine_m(lat, lon, c.lat, c.lon) for c in candidates]
        best, scored, chosen_reason = select_best_candidate(candidates, user_hint_name, distances)

        if best is not None:
            best = enrich_with_place_details(
                best, self.client, is_upstream_id=self.is_upstream_place_id, cancel_event=cancel_event
            )
            if self.client.config.PLACES_OVERPASS_WEBSITE_ENABLED and not best.website:
                website = resolve_website_from_overpass(best, self.client, cancel_event=cancel_event)
                if website:
                    best = dataclasses.replace(best, website=website)

        logger.debug(
            "GeoapifyPlacesProvider.resolve_place_by_lat_lon: lat=%.6f lon=%.6f candidates=%d reason=%s",
            lat,
            lon,
            len(candidates),
            chosen_reason,
        )
        return ResolutionResult(place=best, candidates=candidates, chosen_reason=chosen_reason, scored=scored)

    def search_place_by_text(
        self,
        query: str,
        near_lat: float,
        near_lon: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[PlaceCandidate]:
        results = self.client.search_by_text(query, near_lat, near_lon, cancel_event=cancel_event)
        out: List[PlaceCandidate] = []
        for r in results:
            cand = candidate_from_geocode_result(r)
            if cand is not None:
                out.append(cand)
        return out


def get_providers() -> Dict[str, PlacesProvider]:
    providers = [GeoapifyPlacesProvider()]
    return {p.provider_id: p for p in providers}


def get_provider(provider_id: str) -> Optional[PlacesProvider]:
    return get_providers().get((provider_id or "").strip().lower())


def get_places_provider(provider_id: Optional[str] = None) -> PlacesProvider:
    """Return the configured provider, falling back to Geoapify for unknown ids."""
    wanted = provider_id or settings.PLACES_PROVIDER
    provider = get_provider(wanted)
    if provider is None:
        logger.warning("Unknown PLACES_PROVIDER %r; falling back to %s", wanted, DEFAULT_PROVIDER_ID)
        provider = get_providers()[DEFAULT_PROVIDER_ID]
    return provider


def resolve_place_by_lat_lon(
    lat: float,
    lon: float,
    user_hint_name: Optional[str] = None,
    **kwargs,
) -> ResolutionResult:
    return get_places_provider().resolve_place_by_lat_lon(lat, lon, user_hint_name=user_hint_name, **kwargs)


def search_place_by_text(query: str, near_lat: float, near_lon: float, **kwargs) -> List[PlaceCandidate]:
    return get_places_provider().search_place_by_text(query, near_lat, near_lon, **kwargs)
