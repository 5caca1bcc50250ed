"""
Candidate scoring and best-candidate selection.

Each signal is independent and additive. Signals are evaluated in a fixed
order so the "+"-joined reason string is reproducible.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from places.naming import is_streety_name
from places.places_types import UNKNOWN_PLACE_NAME, PlaceCandidate, ScoredCandidate

logger = logging.getLogger(__name__)

NO_CANDIDATES_REASON = "no_candidates"
DEFAULT_REASON = "default"

# Travel-ish category prefixes to prioritize when scoring
TRAVEL_CATEGORY_PREFIXES = (
    "tourism.",
    "accommodation.",
    "catering.",
    "entertainment.",
    "leisure.",
    "natural.",
    "beach.",
    "heritage.",
    "religion.place_of_worship",
    "building.tourism",
)


def _has_real_name(c: PlaceCandidate) -> bool:
    return bool(c.name) and c.name != UNKNOWN_PLACE_NAME


def _named_place(c: PlaceCandidate, hint: Optional[str]) -> Optional[Tuple[float, str]]:
    if not _has_real_name(c):
        return None
    if is_streety_name(c.name):
        return 0.5, "name_is_streety"
    return 2.0, "has_named_place"


def _locality(c: PlaceCandidate, hint: Optional[str]) -> Optional[Tuple[float, str]]:
    return (1.0, "has_city") if c.city else None


def _website(c: PlaceCandidate, hint: Optional[str]) -> Optional[Tuple[float, str]]:
    return (2.0, "has_website") if c.website else None


def _travel_category(c: PlaceCandidate, hint: Optional[str]) -> Optional[Tuple[float, str]]:
    joined = ",".join(c.categories or []).lower()
    if any(prefix in joined for prefix in TRAVEL_CATEGORY_PREFIXES):
        return 1.5, "travel_category"
    return None


def _hint_match(c: PlaceCandidate, hint: Optional[str]) -> Optional[Tuple[float, str]]:
    h = (hint or "").strip().lower()
    name = (c.name or "").lower()
    if not h or not name:
        return None
    if h in name or name in h:
        return 1.0, "matches_hint"
    return None


Signal = Callable[[PlaceCandidate, Optional[str]], Optional[Tuple[float, str]]]

SIGNALS: List[Signal] = [_named_place, _locality, _website, _travel_category, _hint_match]


def score_candidate(c: PlaceCandidate, user_hint_name: Optional[str] = None) -> Tuple[float, str]:
    """Return (score, reason) where reason joins the fired signal names with '+'."""
    score = 0.0
    reasons: List[str] = []
    for signal in SIGNALS:
        hit = signal(c, user_hint_name)
        if hit is None:
            continue
        points, name = hit
        score += points
        reasons.append(name)
    return score, "+".join(reasons) or DEFAULT_REASON


def select_best_candidate(
    candidates: Sequence[PlaceCandidate],
    user_hint_name: Optional[str] = None,
    distances_m: Optional[Sequence[Optional[float]]] = None,
) -> Tuple[Optional[PlaceCandidate], List[ScoredCandidate], str]:
    """
    Score every candidate and pick the highest.

    Ties keep the first candidate in input order. Returns
    (best, scored, chosen_reason); chosen_reason is "no_candidates" when the
    input is empty.
    """
    scored: List[ScoredCandidate] = []
    best: Optional[ScoredCandidate] = None
    for idx, cand in enumerate(candidates):
        score, reason = score_candidate(cand, user_hint_name)
        dist = distances_m[idx] if distances_m is not None and idx < len(distances_m) else None
        entry = ScoredCandidate(candidate=cand, score=score, reason=reason, distance_m=dist)
        scored.append(entry)
        if best is None or entry.score > best.score:
            best = entry

    if best is None:
        return None, scored, NO_CANDIDATES_REASON

    logger.debug(
        "select_best_candidate: %d candidates, chose id=%s score=%.1f reason=%s",
        len(scored),
        best.candidate.id,
        best.score,
        best.reason,
    )
    return best.candidate, scored, best.reason
