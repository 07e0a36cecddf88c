import os
import asyncio
import pandas as pd
import csv
from typing import List
import sys
from loguru import logger

from recofeed.models import RatedRestaurant, RecommendationCandidate
from recofeed.cache_store import CacheStore, JsonFileKeyValueStore
from recofeed.feed_controller import RecommendationFeed
from recofeed.config import INPUT_CSV, OUTPUT_CSV, CACHE_DIR, PAGES_TO_LOAD, LOG_LEVEL
from recofeed.clients import OpenAIClient, PlacesClient

def load_rated_from_csv(file_path: str, nrows: int = None) -> List[RatedRestaurant]:
    """Load the user's rated restaurants from CSV and convert to RatedRestaurant objects."""
    df = pd.read_csv(file_path, nrows=nrows)
    records = []
    for _, row in df.iterrows():
        # Helper to safely extract values from pandas Series, converting NaN to None
        def safe_get(col):
            if col not in row.index:
                return None
            val = row[col]
            if pd.isna(val):
                return None
            return val

        name = safe_get("Name")
        if name is None:
            continue

        price_range = None
        if safe_get("Price range") is not None:
            try:
                price_range = int(row["Price range"])
            except (ValueError, TypeError):
                price_range = None

        rating = None
        if safe_get("Rating") is not None:
            try:
                rating = float(row["Rating"])
            except (ValueError, TypeError):
                rating = None

        city = safe_get("City")
        cuisine = safe_get("Cuisine")
        records.append(RatedRestaurant(
            name=str(name),
            city=str(city) if city is not None else None,
            cuisine=str(cuisine) if cuisine is not None else None,
            price_range=price_range,
            rating=rating,
        ))
    return records

def write_recommendations(path: str, candidates: List[RecommendationCandidate]) -> None:
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Name", "Cuisine", "City", "Address", "Rating", "Price level", "Open now", "Place id"])
        for c in candidates:
            writer.writerow([
                c.name,
                c.cuisine,
                c.city,
                c.address,
                c.rating,
                c.price_level,
                c.is_open_now,
                c.external_id,
            ])

async def main():
    """
    Run the recommendation feed once from the command line.

    - Loads rated restaurants from the input CSV.
    - Starts the feed and replays a few visibility signals, as a scrolling reader would.
    - Writes the displayed window to the output CSV.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    rated = load_rated_from_csv(INPUT_CSV)
    feed = RecommendationFeed(rated, CacheStore(JsonFileKeyValueStore(CACHE_DIR)))

    if feed.needs_ratings:
        print("No rated restaurants found. Rate a few places to get recommendations.")
        return

    try:
        await feed.start()
        await feed.wait_for_prefetch()
        for page in range(PAGES_TO_LOAD):
            print(f"Page {page + 1}: showing {feed.displayed_count} of {len(feed.filtered)} loaded")
            feed.on_visible()
            await feed.wait_for_prefetch()

        if os.path.exists(OUTPUT_CSV):
            os.remove(OUTPUT_CSV)
        write_recommendations(OUTPUT_CSV, feed.displayed)
        print(f"Wrote {feed.displayed_count} recommendations to {OUTPUT_CSV}")
    finally:
        # Cleanup: close client sessions to prevent unclosed connector warnings
        await PlacesClient().close()
        if OpenAIClient._initialized:
            await OpenAIClient().close()

if __name__ == "__main__":
    asyncio.run(main())
