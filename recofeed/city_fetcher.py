import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from loguru import logger

from recofeed.config import GENERIC_CUISINE, PRICE_BAND, SEARCH_LIMIT, SEARCH_RADIUS_M
from recofeed.clients import PlacesClient
from recofeed.matchers.name_matcher import matches_any_rated
from recofeed.models import RecommendationCandidate, TastePreferences
from recofeed.search_query_set import build_search_query


def _first(*values):
    """First value that is not None."""
    for v in values:
        if v is not None:
            return v
    return None


def _coordinates(raw: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    location = raw.get("location") or {}
    geometry_location = (raw.get("geometry") or {}).get("location") or {}
    lat = _first(location.get("lat"), geometry_location.get("lat"), raw.get("latitude"))
    lng = _first(location.get("lng"), geometry_location.get("lng"), raw.get("longitude"))
    if lat is None or lng is None:
        return None
    try:
        return float(lat), float(lng)
    except (TypeError, ValueError):
        return None


def _photos(raw: Dict[str, Any]) -> List[str]:
    photos = []
    for photo in raw.get("photos") or []:
        if isinstance(photo, str):
            photos.append(photo)
        elif isinstance(photo, dict):
            url = _first(photo.get("url"), photo.get("photo_reference"))
            if url:
                photos.append(str(url))
    return photos


def normalize_result(raw: Dict[str, Any], city: str) -> Optional[RecommendationCandidate]:
    """
    Map one raw search result onto a RecommendationCandidate.

    Alternate field names are resolved first-non-null-wins:
    id > place_id, address > formatted_address > vicinity,
    priceRange > price_level, isOpen > opening_hours.open_now,
    location.lat/lng > geometry.location.lat/lng.

    Returns None for results without a name.
    """
    name = raw.get("name")
    if not name:
        return None
    name = str(name)
    address = str(_first(raw.get("address"), raw.get("formatted_address"), raw.get("vicinity")) or "")

    external_id = _first(raw.get("id"), raw.get("place_id"))
    if external_id is None:
        external_id = f"{name}|{address}".lower()

    price_level = _first(raw.get("priceRange"), raw.get("price_level"))
    try:
        price_level = int(price_level) if price_level is not None else None
    except (TypeError, ValueError):
        price_level = None

    rating = raw.get("rating")
    try:
        rating = float(rating) if rating is not None else None
    except (TypeError, ValueError):
        rating = None

    is_open = _first(raw.get("isOpen"), (raw.get("opening_hours") or {}).get("open_now"))
    hours_summary = raw.get("openingHours")
    if hours_summary is None and is_open is not None:
        hours_summary = "Open now" if is_open else "Closed"

    types = raw.get("types") or []

    return RecommendationCandidate(
        external_id=str(external_id),
        name=name,
        cuisine=str(raw.get("cuisine") or GENERIC_CUISINE),
        address=address,
        city=city,
        rating=rating,
        price_level=price_level,
        opening_hours_summary=hours_summary,
        is_open_now=bool(is_open) if is_open is not None else None,
        photos=_photos(raw),
        coordinates=_coordinates(raw),
        types=[str(t) for t in types] if isinstance(types, list) else [],
    )


def within_price_band(candidate: RecommendationCandidate, avg_price_range: int) -> bool:
    """Candidates without a price level are kept."""
    if candidate.price_level is None:
        return True
    return abs(candidate.price_level - avg_price_range) <= PRICE_BAND


def filter_candidates_for_taste(
    candidates: List[RecommendationCandidate],
    prefs: TastePreferences,
) -> List[RecommendationCandidate]:
    """Drop candidates outside the price band or overlapping an already rated name."""
    kept = []
    for c in candidates:
        if not within_price_band(c, prefs.avg_price_range):
            continue
        if matches_any_rated(c.name, prefs.rated_names):
            continue
        kept.append(c)
    return kept


async def fetch_city_recommendations(
    city: str,
    prefs: TastePreferences,
) -> List[RecommendationCandidate]:
    """
    Search one city and return normalized, taste-filtered candidates.

    Args:
        city (str): City to search in.
        prefs (TastePreferences): Price and cuisine signals plus rated names to exclude.

    Returns:
        List[RecommendationCandidate]: Candidates for this city.
                                       Returns an empty list on timeout or failure.
    """
    start = time.perf_counter()
    query = build_search_query(city, prefs.preferred_cuisine)
    logger.debug(f"▶️ [{datetime.now().strftime('%H:%M:%S')}] START search for '{city}' ({query})")
    try:
        places_client = PlacesClient()
        data = await places_client.search(
            query=query,
            location=city,
            radius=SEARCH_RADIUS_M,
            limit=SEARCH_LIMIT,
        )
        raw_results = data.get("results") or []
        candidates = []
        for raw in raw_results:
            if not isinstance(raw, dict):
                continue
            candidate = normalize_result(raw, city)
            if candidate is not None:
                candidates.append(candidate)

        kept = filter_candidates_for_taste(candidates, prefs)
        duration = time.perf_counter() - start
        logger.debug(
            f"✅ [{datetime.now().strftime('%H:%M:%S')}] '{city}': {len(kept)}/{len(candidates)} kept in {duration:.2f}s"
        )
        return kept
    except asyncio.TimeoutError:
        logger.debug(f"⏱️ [{datetime.now().strftime('%H:%M:%S')}] TIMEOUT searching '{city}'")
        return []
    except Exception as e:
        logger.debug(f"⚠️ [{datetime.now().strftime('%H:%M:%S')}] ERROR searching '{city}': {e}")
        return []
