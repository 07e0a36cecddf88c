from recofeed.models import RatedRestaurant
from recofeed.search_query_set import (
    average_price_range,
    build_search_query,
    build_taste_preferences,
    known_cities,
    preferred_cuisine_for_city,
)


def test_average_price_range_defaults_to_two():
    assert average_price_range([]) == 2
    assert average_price_range([RatedRestaurant(name="A")]) == 2


def test_average_price_range_rounds_half_up():
    rated = [RatedRestaurant(name="A", price_range=2), RatedRestaurant(name="B", price_range=3)]
    assert average_price_range(rated) == 3


def test_preferred_cuisine_is_most_common_in_city():
    rated = [
        RatedRestaurant(name="A", city="Rome", cuisine="Italian"),
        RatedRestaurant(name="B", city="Rome", cuisine="Italian"),
        RatedRestaurant(name="C", city="Rome", cuisine="Japanese"),
        RatedRestaurant(name="D", city="Paris", cuisine="French"),
    ]
    assert preferred_cuisine_for_city(rated, "rome") == "Italian"
    assert preferred_cuisine_for_city(rated, "Berlin") is None


def test_query_is_biased_by_cuisine():
    assert build_search_query("Rome", "Italian") == "Italian restaurants in Rome"
    assert build_search_query("Rome") == "restaurants in Rome"


def test_taste_preferences_collect_rated_names():
    rated = [RatedRestaurant(name="Luigi's", city="Rome", price_range=2)]
    prefs = build_taste_preferences(rated, "Rome")
    assert prefs.avg_price_range == 2
    assert prefs.rated_names == ["Luigi's"]


def test_known_cities_are_distinct_in_first_seen_order():
    rated = [
        RatedRestaurant(name="A", city="Rome"),
        RatedRestaurant(name="B", city="Paris"),
        RatedRestaurant(name="C", city="rome"),
        RatedRestaurant(name="D"),
    ]
    assert known_cities(rated) == ["Rome", "Paris"]
