"""
Turn raw Geoapify payloads (Places features and geocoder results) into
PlaceCandidate records.

All functions here are pure: a feature that cannot be placed on the map
(no finite lat/lon) yields None and is dropped by the caller.
"""
from __future__ import annotations

import ipaddress
import math
import re
from typing import Any, List, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from places.places_types import UNKNOWN_PLACE_NAME, PlaceCandidate

SOURCE_GEOAPIFY = "geoapify"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_ANY_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_UNSAFE_CHARS_RE = re.compile(r"[\s\x00-\x1f\x7f]")
_HOSTNAME_RE = re.compile(r"^[^\W_](?:(?:[^\W_]|-)*[^\W_])?(?:\.[^\W_](?:(?:[^\W_]|-)*[^\W_])?)*\.?$")

FEATURE_CITY_KEYS = ("city", "town", "village", "municipality", "district")
RESULT_CITY_KEYS = ("city", "town", "village", "suburb")


def norm_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _first_non_empty(props: Mapping[str, Any], keys) -> Optional[str]:
    for key in keys:
        val = norm_str(props.get(key))
        if val:
            return val
    return None


def _coerce_coord(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def fallback_place_id(lat: float, lon: float) -> str:
    """Deterministic key for places the upstream gave no id for ("lon,lat")."""
    return f"{lon:.6f},{lat:.6f}"


def _is_valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return bool(_HOSTNAME_RE.match(host))


def normalize_website(value: Any) -> Optional[str]:
    """
    Coerce a raw website value into an absolute URL without fragment.

    Bare hosts get an https:// scheme. Anything that does not parse into a
    URL with a usable host is dropped. Values with whitespace or control
    characters, or with a non-http scheme, are dropped rather than repaired.
    """
    raw = norm_str(value)
    if not raw or _UNSAFE_CHARS_RE.search(raw):
        return None
    if _SCHEME_RE.match(raw):
        with_scheme = raw
    elif _ANY_SCHEME_RE.match(raw):
        return None
    else:
        with_scheme = f"https://{raw}"
    try:
        parts = urlsplit(with_scheme)
        port = parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    host = parts.hostname
    if not host or not _is_valid_host(host) or parts.path.startswith("//"):
        return None
    # netloc must be exactly [userinfo@]host[:port]; catches stray colons
    expected = f"[{host}]" if ":" in host else host
    if port is not None:
        expected = f"{expected}:{port}"
    if parts.netloc.rpartition("@")[2].lower() != expected.lower():
        return None
    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path, parts.query, ""))


def _contact_value(props: Mapping[str, Any], key: str) -> str:
    contact = _as_mapping(props.get("contact"))
    ds_raw = _as_mapping(_as_mapping(props.get("datasource")).get("raw"))
    return (
        norm_str(props.get(key))
        or norm_str(contact.get(key))
        or norm_str(ds_raw.get(key))
        or norm_str(ds_raw.get(f"contact:{key}"))
    )


def extract_website(props: Any) -> Optional[str]:
    return normalize_website(_contact_value(_as_mapping(props), "website"))


def extract_phone(props: Any) -> Optional[str]:
    return _contact_value(_as_mapping(props), "phone") or None


def extract_explicit_name(props: Any) -> Optional[str]:
    """Name, else first address line, else formatted address; None if all empty."""
    return _first_non_empty(_as_mapping(props), ("name", "address_line1", "formatted"))


def extract_name(props: Any) -> str:
    return extract_explicit_name(props) or UNKNOWN_PLACE_NAME


def extract_categories(props: Any) -> List[str]:
    cats = _as_mapping(props).get("categories")
    if not isinstance(cats, list):
        return []
    return [c.strip() for c in cats if isinstance(c, str) and c.strip()]


def _region(props: Mapping[str, Any]) -> Optional[str]:
    return _first_non_empty(props, ("state", "county"))


def _country(props: Mapping[str, Any]) -> Optional[str]:
    return _first_non_empty(props, ("country", "country_code"))


def _feature_coords(feature: Mapping[str, Any], props: Mapping[str, Any]):
    lat = _coerce_coord(props.get("lat"))
    lon = _coerce_coord(props.get("lon"))
    if lat is not None and lon is not None:
        return lat, lon
    # GeoJSON geometry is [lon, lat]
    coords = _as_mapping(feature.get("geometry")).get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) >= 2:
        lon = _coerce_coord(coords[0])
        lat = _coerce_coord(coords[1])
        if lat is not None and lon is not None:
            return lat, lon
    return None


def candidate_from_feature(feature: Any) -> Optional[PlaceCandidate]:
    """Build a candidate from one Places API GeoJSON feature."""
    feature = _as_mapping(feature)
    props = _as_mapping(feature.get("properties"))
    coords = _feature_coords(feature, props)
    if coords is None:
        return None
    lat, lon = coords

    return PlaceCandidate(
        id=norm_str(props.get("place_id")) or fallback_place_id(lat, lon),
        name=extract_name(props),
        categories=extract_categories(props),
        address=norm_str(props.get("formatted")) or None,
        city=_first_non_empty(props, FEATURE_CITY_KEYS),
        region=_region(props),
        country=_country(props),
        website=extract_website(props),
        phone=extract_phone(props),
        lat=lat,
        lon=lon,
        source=SOURCE_GEOAPIFY,
        raw=dict(feature),
    )


def candidate_from_geocode_result(
    result: Any,
    fallback_lat: Optional[float] = None,
    fallback_lon: Optional[float] = None,
) -> Optional[PlaceCandidate]:
    """
    Build a candidate from a geocoder result (reverse or text search, format=json).

    Reverse geocoding passes the query point as fallback coordinates since the
    result describes that point even when it omits lat/lon.
    """
    result = _as_mapping(result)
    if not result:
        return None
    lat = _coerce_coord(result.get("lat"))
    lon = _coerce_coord(result.get("lon"))
    if lat is None or lon is None:
        lat = _coerce_coord(fallback_lat)
        lon = _coerce_coord(fallback_lon)
    if lat is None or lon is None:
        return None

    category = norm_str(result.get("category"))
    return PlaceCandidate(
        id=norm_str(result.get("place_id")) or fallback_place_id(lat, lon),
        name=extract_name(result),
        categories=[category] if category else [],
        address=norm_str(result.get("formatted")) or None,
        city=_first_non_empty(result, RESULT_CITY_KEYS),
        region=_region(result),
        country=_country(result),
        website=extract_website(result),
        phone=extract_phone(result),
        lat=lat,
        lon=lon,
        source=SOURCE_GEOAPIFY,
        raw=dict(result),
    )


def candidates_from_features(features: Any) -> List[PlaceCandidate]:
    if not isinstance(features, list):
        return []
    out: List[PlaceCandidate] = []
    for feature in features:
        cand = candidate_from_feature(feature)
        if cand is not None:
            out.append(cand)
    return out


def looks_like_geoapify_place_id(place_id: Optional[str]) -> bool:
    """Geoapify place ids are long opaque strings; fallback ids are short "lon,lat" pairs."""
    if not place_id:
        return False
    if "," in place_id:
        return False
    return len(place_id) > 20
