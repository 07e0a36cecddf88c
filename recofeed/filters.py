from typing import Iterable, List, Optional

from recofeed.models import RecommendationCandidate


def filter_candidates(
    all_loaded: List[RecommendationCandidate],
    selected_cities: Optional[Iterable[str]] = None,
    selected_price_ranges: Optional[Iterable[int]] = None,
) -> List[RecommendationCandidate]:
    """
    Apply the user's city and price-range selections, preserving order.

    An empty selection leaves that facet unconstrained. When price ranges are
    selected, candidates without a price level are excluded.
    """
    cities = set(selected_cities or [])
    prices = set(selected_price_ranges or [])
    return [
        c for c in all_loaded
        if (not cities or c.city in cities)
        and (not prices or c.price_level in prices)
    ]
