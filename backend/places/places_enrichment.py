from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Callable, Optional

from places.geo_utils import haversine_m
from places.geoapify_client import GeoapifyClient
from places.naming import is_streety_name, name_similarity
from places.normalizer import (
    extract_phone,
    extract_website,
    looks_like_geoapify_place_id,
    norm_str,
    normalize_website,
)
from places.places_types import UNKNOWN_PLACE_NAME, PlaceCandidate

logger = logging.getLogger(__name__)

OVERPASS_RADIUS_M = 1500.0
OVERPASS_MIN_SIMILARITY = 0.22
OVERPASS_LABEL_TAGS = ("name", "official_name", "short_name", "alt_name", "brand", "operator")


def _better_name(current: str, detail_name: str) -> str:
    """Detail name wins unless it would turn a real place name into a street label."""
    if not detail_name:
        return current
    current_is_real = bool(current) and current != UNKNOWN_PLACE_NAME and not is_streety_name(current)
    if current_is_real and is_streety_name(detail_name):
        return current
    return detail_name


def enrich_with_place_details(
    candidate: PlaceCandidate,
    client: GeoapifyClient,
    is_upstream_id: Callable[[str], bool] = looks_like_geoapify_place_id,
    cancel_event: Optional[threading.Event] = None,
) -> PlaceCandidate:
    """
    Backfill website/phone (and possibly a better name) from one detail lookup.

    Only fills gaps: values already on the candidate win. Synthesized
    coordinate ids are skipped without a network call, and any failure
    returns the candidate unchanged.
    """
    if not is_upstream_id(candidate.id):
        logger.debug("enrich_with_place_details: skipping non-upstream id %s", candidate.id)
        return candidate

    details = client.place_details(candidate.id, cancel_event=cancel_event)
    if not details:
        return candidate
    props = details.get("properties")
    if not isinstance(props, dict):
        return candidate

    website = extract_website(props) or extract_website(props.get("contact"))
    phone = extract_phone(props) or extract_phone(props.get("contact"))
    name = _better_name(candidate.name, norm_str(props.get("name")))

    return dataclasses.replace(
        candidate,
        name=name,
        website=candidate.website or website,
        phone=candidate.phone or phone,
        raw={"base": candidate.raw, "details": details},
    )


def _element_label(tags: dict) -> str:
    for key in OVERPASS_LABEL_TAGS:
        val = tags.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def _element_coords(el: dict):
    center = el.get("center") if isinstance(el.get("center"), dict) else el
    lat, lon = center.get("lat"), center.get("lon")
    if isinstance(lat, (int, float)) and isinstance(lon, (int, float)):
        return float(lat), float(lon)
    return None


def resolve_website_from_overpass(
    candidate: PlaceCandidate,
    client: GeoapifyClient,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[str]:
    """
    Look for a nearby OSM object whose label resembles the candidate name and
    which carries a website tag. Ranks by 0.7 * name similarity + 0.3 * proximity.
    """
    name = (candidate.name or "").strip()
    if not name or is_streety_name(name):
        return None

    elements = client.overpass_website_elements(
        candidate.lat, candidate.lon, OVERPASS_RADIUS_M, cancel_event=cancel_event
    )
    best_url: Optional[str] = None
    best_score = float("-inf")
    for el in elements:
        tags = el.get("tags") if isinstance(el.get("tags"), dict) else {}
        # Websites on roads are usually about something else
        if isinstance(tags.get("highway"), str) and tags["highway"]:
            continue
        website_raw = tags.get("website") or tags.get("contact:website")
        if not isinstance(website_raw, str) or not website_raw.strip():
            continue
        label = _element_label(tags)
        sim = name_similarity(name, label)
        if not label or sim < OVERPASS_MIN_SIMILARITY:
            continue
        coords = _element_coords(el)
        if coords is None:
            continue
        d = haversine_m(candidate.lat, candidate.lon, coords[0], coords[1])
        combined = sim * 0.7 + max(0.0, 1 - d / OVERPASS_RADIUS_M) * 0.3
        if combined > best_score:
            best_score = combined
            best_url = website_raw.strip()

    return normalize_website(best_url) if best_url else None
