"""
Typed data models for the recommendation feed.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass
class RecommendationCandidate:
    """Restaurant returned by the search provider, not yet rated by the user."""
    external_id: str  # Provider id, primary de-duplication key
    name: str
    cuisine: str  # "Restaurant" until enriched
    address: str
    city: str  # Query city this candidate was fetched under
    rating: Optional[float] = None
    price_level: Optional[int] = None  # 1-4
    opening_hours_summary: Optional[str] = None
    is_open_now: Optional[bool] = None
    photos: List[str] = field(default_factory=list)
    coordinates: Optional[Tuple[float, float]] = None  # (lat, lng)
    types: List[str] = field(default_factory=list)


@dataclass
class CacheEntry:
    """One city's cached batch of candidates."""
    city: str
    recommendations: List[RecommendationCandidate]
    fetched_at_epoch_millis: int


@dataclass
class RatedRestaurant:
    """Restaurant the user has already rated. Read-only to the feed."""
    name: str
    city: Optional[str] = None
    cuisine: Optional[str] = None
    price_range: Optional[int] = None
    rating: Optional[float] = None


@dataclass
class TastePreferences:
    """Taste signals derived from the user's rated restaurants."""
    avg_price_range: int
    preferred_cuisine: Optional[str] = None
    rated_names: List[str] = field(default_factory=list)


class FeedState(str, Enum):
    IDLE = "idle"
    FETCHING_INITIAL = "fetching_initial"
    READY = "ready"
    FETCHING_MORE = "fetching_more"
