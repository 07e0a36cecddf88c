# recofeed/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
GOOGLE_PLACES_API_KEY = os.getenv("GOOGLE_PLACES_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Runtime parameters
CONCURRENCY = int(os.getenv("CONCURRENCY", "50"))
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
OPENAI_MODEL = "gpt-4o-mini"

# URLs
PLACES_SEARCH_URL = os.getenv(
    "PLACES_SEARCH_URL",
    "https://maps.googleapis.com/maps/api/place/textsearch/json",
)

# Search
SEARCH_RADIUS_M = 10_000
SEARCH_LIMIT = 20
DEFAULT_PRICE_RANGE = 2
PRICE_BAND = 1
FUZZY_THRESHOLD = 100  # partial_ratio of 100 == one name contains the other
GENERIC_CUISINE = "Restaurant"

# Feed window
PAGE_SIZE = 20
CITY_BATCH_SIZE = 3
LOW_BUFFER_THRESHOLD = 100

# Cache
CACHE_FRESHNESS_MS = 60 * 60 * 1000
CACHE_KEY_PREFIX = "recommendations_cache"
CACHE_VERSION = "v2"
CACHE_DIR = os.getenv("CACHE_DIR", ".recofeed_cache")

# File names
INPUT_CSV = "rated_restaurants.csv"
OUTPUT_CSV = "recommendations.csv"
PAGES_TO_LOAD = int(os.getenv("PAGES_TO_LOAD", "3"))
