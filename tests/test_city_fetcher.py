import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from recofeed.city_fetcher import fetch_city_recommendations, normalize_result
from recofeed.matchers.name_matcher import matches_any_rated, names_overlap
from recofeed.models import TastePreferences


def _mock_places(results=None, side_effect=None):
    instance = MagicMock()
    instance.search = AsyncMock(return_value={"results": results or []}, side_effect=side_effect)
    return instance


def test_names_overlap_either_direction_case_insensitive():
    assert names_overlap("Luigi's Trattoria", "luigi's")
    assert names_overlap("LUIGI'S", "Luigi's Trattoria")
    assert not names_overlap("Osteria Bella", "Luigi's")
    assert not names_overlap("", "Luigi's")


def test_short_names_match_broadly():
    assert matches_any_rated("Cafe Roma", ["cafe"])


def test_normalize_prefers_first_non_null_field():
    raw = {
        "id": "abc",
        "place_id": "ignored",
        "name": "Osteria Bella",
        "formatted_address": "Via Roma 1",
        "vicinity": "Roma",
        "priceRange": None,
        "price_level": 3,
        "location": {"lat": 41.9, "lng": 12.5},
        "geometry": {"location": {"lat": 0.0, "lng": 0.0}},
        "opening_hours": {"open_now": False},
        "photos": [{"photo_reference": "ref1"}, "https://example.com/b.jpg"],
        "types": ["restaurant", "food"],
    }
    c = normalize_result(raw, "Rome")
    assert c.external_id == "abc"
    assert c.address == "Via Roma 1"
    assert c.price_level == 3
    assert c.coordinates == (41.9, 12.5)
    assert c.is_open_now is False
    assert c.opening_hours_summary == "Closed"
    assert c.photos == ["ref1", "https://example.com/b.jpg"]
    assert c.cuisine == "Restaurant"
    assert c.city == "Rome"


def test_normalize_google_shape_and_synthetic_id():
    raw = {
        "name": "Da Enzo",
        "vicinity": "Via dei Vascellari 29",
        "geometry": {"location": {"lat": 41.88, "lng": 12.47}},
    }
    c = normalize_result(raw, "Rome")
    assert c.external_id == "da enzo|via dei vascellari 29"
    assert c.coordinates == (41.88, 12.47)
    assert c.price_level is None
    assert normalize_result({"place_id": "x"}, "Rome") is None


@pytest.mark.asyncio
async def test_example_scenario_rome():
    """Fuzzy-name exclusion and price band applied together."""
    prefs = TastePreferences(avg_price_range=2, rated_names=["Luigi's"])
    results = [
        {"place_id": "1", "name": "Luigi's Trattoria", "price_level": 2},
        {"place_id": "2", "name": "Osteria Bella", "price_level": 2},
        {"place_id": "3", "name": "Le Grand", "price_level": 4},
    ]
    with patch("recofeed.city_fetcher.PlacesClient") as mock_places_cls:
        mock_places_cls.return_value = _mock_places(results)
        candidates = await fetch_city_recommendations("Rome", prefs)

    assert [(c.name, c.price_level) for c in candidates] == [("Osteria Bella", 2)]


@pytest.mark.asyncio
async def test_missing_price_level_is_kept():
    prefs = TastePreferences(avg_price_range=1)
    with patch("recofeed.city_fetcher.PlacesClient") as mock_places_cls:
        mock_places_cls.return_value = _mock_places([{"place_id": "1", "name": "Mystery"}])
        candidates = await fetch_city_recommendations("Rome", prefs)

    assert [c.name for c in candidates] == ["Mystery"]


@pytest.mark.asyncio
async def test_search_uses_fixed_radius_and_cuisine_query():
    prefs = TastePreferences(avg_price_range=2, preferred_cuisine="Italian")
    with patch("recofeed.city_fetcher.PlacesClient") as mock_places_cls:
        instance = _mock_places([])
        mock_places_cls.return_value = instance
        await fetch_city_recommendations("Rome", prefs)

    kwargs = instance.search.call_args.kwargs
    assert kwargs["query"] == "Italian restaurants in Rome"
    assert kwargs["location"] == "Rome"
    assert kwargs["radius"] == 10_000
    assert kwargs["limit"] == 20


@pytest.mark.asyncio
async def test_failed_search_returns_empty_list():
    prefs = TastePreferences(avg_price_range=2)
    with patch("recofeed.city_fetcher.PlacesClient") as mock_places_cls:
        mock_places_cls.return_value = _mock_places(side_effect=RuntimeError("boom"))
        candidates = await fetch_city_recommendations("Rome", prefs)

    assert candidates == []
