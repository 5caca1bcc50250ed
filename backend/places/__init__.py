from .places_types import PlaceCandidate, PlaceTextInput, ResolutionResult, ScoredCandidate
from .place_text import build_description, build_title, category_label
from .providers import (
    GeoapifyPlacesProvider,
    PlacesProvider,
    get_places_provider,
    resolve_place_by_lat_lon,
    search_place_by_text,
)

__all__ = [
    "PlaceCandidate",
    "PlaceTextInput",
    "ResolutionResult",
    "ScoredCandidate",
    "build_description",
    "build_title",
    "category_label",
    "GeoapifyPlacesProvider",
    "PlacesProvider",
    "get_places_provider",
    "resolve_place_by_lat_lon",
    "search_place_by_text",
]
