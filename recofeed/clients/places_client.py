"""
Singleton Places search client with rate limiting using aiolimiter.
"""
from aiohttp import ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter
from typing import Any, Dict, Optional
from loguru import logger

from recofeed.config import CONCURRENCY, GOOGLE_PLACES_API_KEY, PLACES_SEARCH_URL, REQUEST_TIMEOUT


class PlacesAPIError(Exception):
    """Raised when the search provider answers with an error."""


class PlacesClient:
    """
    Singleton client for the restaurant search provider (Google Places text search).
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not PlacesClient._initialized:
            self.api_key = GOOGLE_PLACES_API_KEY
            self.base_url = PLACES_SEARCH_URL
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            self._session: Optional[ClientSession] = None
            PlacesClient._initialized = True

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=REQUEST_TIMEOUT))
        return self._session

    async def search(
        self,
        query: str,
        location: str,
        radius: int,
        limit: int,
    ) -> Dict[str, Any]:
        """
        Run one text search scoped to a location.

        Args:
            query: Free-text query, e.g. "Italian restaurants in Rome".
            location: City the search is scoped to.
            radius: Search radius in meters.
            limit: Maximum number of results to return.

        Returns:
            {"results": [...]} with at most `limit` raw place dictionaries.
        """
        params = {
            "query": query if location.lower() in query.lower() else f"{query} {location}",
            "radius": str(radius),
            "type": "restaurant",
        }
        if self.api_key:
            params["key"] = self.api_key

        async with self.rate_limiter:
            session = await self._get_session()
            try:
                async with session.get(self.base_url, params=params) as resp:
                    if resp.status != 200:
                        snippet = (await resp.text())[:300]
                        raise PlacesAPIError(f"upstream {resp.status}: {snippet}")
                    data = await resp.json()
            except Exception as e:
                logger.debug(f"⚠️ Places search failed for '{location}': {e}")
                raise

        status = data.get("status")
        if status not in (None, "OK", "ZERO_RESULTS"):
            raise PlacesAPIError(
                f"Places API error: {status} - {data.get('error_message', 'Unknown error')}"
            )

        results = data.get("results") or []
        return {"results": results[:limit] if isinstance(results, list) else []}

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
