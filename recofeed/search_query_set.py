from collections import Counter
from typing import List, Optional
from loguru import logger

from recofeed.config import DEFAULT_PRICE_RANGE
from recofeed.models import RatedRestaurant, TastePreferences


def average_price_range(rated: List[RatedRestaurant]) -> int:
    """
    Mean of the user's rated price ranges, rounded half up.

    Returns DEFAULT_PRICE_RANGE when no rated restaurant carries a price range.
    """
    prices = [r.price_range for r in rated if r.price_range]
    if not prices:
        return DEFAULT_PRICE_RANGE
    mean = sum(prices) / len(prices)
    return int(mean + 0.5)


def preferred_cuisine_for_city(rated: List[RatedRestaurant], city: str) -> Optional[str]:
    """
    Most common cuisine among the user's rated restaurants in `city`.
    Ties go to the cuisine rated first.
    """
    city_key = city.strip().lower()
    cuisines = [
        r.cuisine.strip()
        for r in rated
        if r.cuisine and r.cuisine.strip() and (r.city or "").strip().lower() == city_key
    ]
    if not cuisines:
        return None
    return Counter(cuisines).most_common(1)[0][0]


def build_taste_preferences(rated: List[RatedRestaurant], city: str) -> TastePreferences:
    prefs = TastePreferences(
        avg_price_range=average_price_range(rated),
        preferred_cuisine=preferred_cuisine_for_city(rated, city),
        rated_names=[r.name for r in rated if r.name],
    )
    logger.debug(
        f"Taste for '{city}': price≈{prefs.avg_price_range}, cuisine={prefs.preferred_cuisine or '-'}"
    )
    return prefs


def build_search_query(city: str, preferred_cuisine: Optional[str] = None) -> str:
    """
    Build the text query for one city, biased toward the preferred cuisine.

    Example: ("Rome", "Italian") -> "Italian restaurants in Rome"
    """
    if preferred_cuisine:
        return f"{preferred_cuisine} restaurants in {city}"
    return f"restaurants in {city}"


def known_cities(rated: List[RatedRestaurant]) -> List[str]:
    """Distinct cities of the rated restaurants, in first-seen order."""
    seen = set()
    cities = []
    for r in rated:
        city = (r.city or "").strip()
        if city and city.lower() not in seen:
            seen.add(city.lower())
            cities.append(city)
    return cities
