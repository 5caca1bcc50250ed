"""
Name heuristics shared by scoring, enrichment and display text.

Geocoders often hand back a street segment or intersection as the "name" of a
coordinate. Those labels are useless as place titles, so they are detected
here with an ordered list of rules.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Callable, List, Tuple

_STREET_KEYWORDS_RE = re.compile(
    r"\b(street|road|avenue|drive|lane|boulevard|highway|route|junction|intersection|roundabout)\b",
    re.IGNORECASE,
)
_HOUSE_NUMBER_RE = re.compile(r"^\d+\s+\w+")
_INTERSECTION_SEPARATORS = (" at ", " & ", " and ")

# Evaluated top-to-bottom against the lowercased name; first hit wins.
STREETY_RULES: List[Tuple[str, Callable[[str], bool]]] = [
    ("street_keyword", lambda n: bool(_STREET_KEYWORDS_RE.search(n))),
    ("house_number", lambda n: bool(_HOUSE_NUMBER_RE.match(n))),
    ("intersection", lambda n: any(sep in n for sep in _INTERSECTION_SEPARATORS)),
]


def streety_rule(name: str | None) -> str | None:
    """Return the name of the first streety rule that matches, or None."""
    n = (name or "").lower()
    if not n:
        return None
    for rule_name, predicate in STREETY_RULES:
        if predicate(n):
            return rule_name
    return None


def is_streety_name(name: str | None) -> bool:
    return streety_rule(name) is not None


def normalize_for_compare(value: str | None) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    text = unicodedata.normalize("NFD", (value or "").lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def name_similarity(a: str | None, b: str | None) -> float:
    """
    Rough 0..1 similarity between two place labels.

    Exact match scores 1, containment 0.85, otherwise token Jaccard.
    """
    aa = normalize_for_compare(a)
    bb = normalize_for_compare(b)
    if not aa or not bb:
        return 0.0
    if aa == bb:
        return 1.0
    if aa in bb or bb in aa:
        return 0.85
    a_tokens = set(aa.split())
    b_tokens = set(bb.split())
    union = a_tokens | b_tokens
    if not union:
        return 0.0
    return len(a_tokens & b_tokens) / len(union)
