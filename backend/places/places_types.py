from dataclasses import dataclass, field
from typing import Any, List, Optional

UNKNOWN_PLACE_NAME = "Unknown Place"


@dataclass(frozen=True)
class PlaceCandidate:
    """One possible real-world place, independent of the backend that produced it."""
    id: str  # upstream place id, or "lon,lat" fallback key
    name: str
    lat: float
    lon: float
    source: str  # e.g. "geoapify"
    categories: List[str] = field(default_factory=list)
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None  # absolute https:// URL without fragment
    phone: Optional[str] = None
    raw: Any = field(default=None, compare=False, repr=False)  # diagnostics only


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: PlaceCandidate
    score: float
    reason: str
    distance_m: Optional[float] = None


@dataclass
class ResolutionResult:
    place: Optional[PlaceCandidate]
    candidates: List[PlaceCandidate] = field(default_factory=list)
    chosen_reason: str = "no_candidates"
    scored: List[ScoredCandidate] = field(default_factory=list)


@dataclass
class PlaceTextInput:
    name: Optional[str] = None
    categories: Optional[List[str]] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
