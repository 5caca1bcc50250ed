"""
Format place text (title + description) from real metadata.

Stable, short strings for UI; no generic fluff. The category label table is
ordered and its order is part of the output contract.
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence, Tuple

from places.naming import is_streety_name
from places.places_types import UNKNOWN_PLACE_NAME

FALLBACK_TITLE = "Location"
FALLBACK_LABEL = "Place"
MAX_ADDRESS_LEN = 80

# (substrings matched against the lowercased, comma-joined categories, label)
# Specific subcategories come before their parent.
CATEGORY_LABEL_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("accommodation.hotel",), "Hotel"),
    (("accommodation.guest_house",), "Guest house"),
    (("accommodation",), "Accommodation"),
    (("catering.restaurant",), "Restaurant"),
    (("catering.cafe",), "Cafe"),
    (("catering.bar", "catering.pub"), "Bar"),
    (("entertainment.museum",), "Museum"),
    (("tourism.attraction", "tourism.sights"), "Attraction"),
    (("leisure.park",), "Park"),
    (("natural",), "Nature spot"),
    (("beach",), "Beach"),
    (("religion.place_of_worship",), "Place of worship"),
]


def _field(place: Any, key: str) -> Any:
    if isinstance(place, dict):
        return place.get(key)
    return getattr(place, key, None)


def _str_field(place: Any, key: str) -> str:
    val = _field(place, key)
    return val.strip() if isinstance(val, str) else ""


def _title_case(s: str) -> str:
    words = [w for w in re.split(r"[\s_]+", s) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def category_label(categories: Optional[Sequence[str]]) -> str:
    cats = [c for c in (categories or []) if isinstance(c, str)]
    joined = ",".join(cats).lower()
    if not joined:
        return FALLBACK_LABEL

    for needles, label in CATEGORY_LABEL_RULES:
        if any(n in joined for n in needles):
            return label

    # Fallback: first segment of the first category
    first = cats[0] if cats else ""
    if first:
        return _title_case(first.split(".")[0]) or FALLBACK_LABEL
    return FALLBACK_LABEL


def _pick_locality(place: Any) -> Optional[str]:
    return _str_field(place, "city") or _str_field(place, "region") or None


def build_title(place: Any) -> str:
    """
    Return the place name when it is a real name; otherwise synthesize
    "<Category> near <locality>". "Location" when there is no place at all.
    """
    if place is None:
        return FALLBACK_TITLE
    name = _str_field(place, "name")
    if name and name != UNKNOWN_PLACE_NAME and not is_streety_name(name):
        return name

    cat = category_label(_field(place, "categories"))
    locality = _pick_locality(place)
    return f"{cat} near {locality}" if locality else cat


def build_description(place: Any) -> str:
    if place is None:
        return FALLBACK_LABEL

    cat = category_label(_field(place, "categories"))
    locality = _pick_locality(place)
    parts = [f"{cat} in {locality}." if locality else f"{cat}."]

    # Geocoders use "Unnamed Road" and friends as placeholders
    addr = _str_field(place, "address")
    if addr and len(addr) <= MAX_ADDRESS_LEN and "unnamed" not in addr.lower():
        parts.append(addr if addr.endswith(".") else f"{addr}.")

    return re.sub(r"\s+", " ", " ".join(parts)).strip()
