"""
Incremental delivery of recommendations.

The feed keeps a growing, de-duplicated `all_loaded` list, a filtered view of
it, and a displayed prefix of that view. Showing more (revealing loaded data)
and fetching more (loading the next cities) are separate operations: the
former is instantaneous, the latter runs as a background task.
"""
import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional
from loguru import logger

from recofeed.cache_store import CacheStore, is_fresh, now_millis
from recofeed.city_fetcher import fetch_city_recommendations
from recofeed.config import CITY_BATCH_SIZE, LOW_BUFFER_THRESHOLD, PAGE_SIZE
from recofeed.enrichers.cuisine_enricher import enrich_candidates
from recofeed.filters import filter_candidates
from recofeed.matchers.name_matcher import matches_any_rated
from recofeed.merger import merge_candidates, order_batch
from recofeed.models import FeedState, RatedRestaurant, RecommendationCandidate, TastePreferences
from recofeed.search_query_set import build_taste_preferences, known_cities

CityFetcher = Callable[[str, TastePreferences], Awaitable[List[RecommendationCandidate]]]
Enricher = Callable[[List[RecommendationCandidate]], Awaitable[List[RecommendationCandidate]]]


class RecommendationFeed:
    """
    State machine driving the recommendation feed.

    Idle -> FetchingInitial on start() with at least one known city.
    FetchingInitial -> Ready once the first city batch settles.
    Ready -> FetchingMore when a visibility signal finds more loaded
    candidates to reveal, or whenever fewer than `low_buffer` remain beyond
    the displayed window. FetchingMore -> Ready when that fetch settles.
    """

    def __init__(
        self,
        rated: Iterable[RatedRestaurant],
        cache_store: CacheStore,
        cities: Optional[Iterable[str]] = None,
        *,
        page_size: int = PAGE_SIZE,
        city_batch_size: int = CITY_BATCH_SIZE,
        low_buffer: int = LOW_BUFFER_THRESHOLD,
        shuffle_seed: Optional[int] = None,
        fetch_city: CityFetcher = fetch_city_recommendations,
        enrich: Enricher = enrich_candidates,
        clock: Callable[[], int] = now_millis,
    ):
        self.rated: List[RatedRestaurant] = list(rated)
        self.cities: List[str] = list(cities) if cities is not None else known_cities(self.rated)
        self.cache_store = cache_store
        self.page_size = page_size
        self.city_batch_size = city_batch_size
        self.low_buffer = low_buffer
        self.shuffle_seed = shuffle_seed
        self.fetch_city = fetch_city
        self.enrich = enrich
        self.clock = clock

        self.state = FeedState.IDLE
        self.all_loaded: List[RecommendationCandidate] = []
        self.filtered: List[RecommendationCandidate] = []
        self.selected_cities: List[str] = []
        self.selected_price_ranges: List[int] = []
        self._window = 0
        self._cursor = 0
        self._round = 0
        self._generation = 0
        self._merge_lock = asyncio.Lock()
        self._prefetch_task: Optional[asyncio.Task] = None

    # --- derived views -------------------------------------------------

    @property
    def needs_ratings(self) -> bool:
        """True when there is no taste signal to recommend from."""
        return not self.rated

    @property
    def displayed_count(self) -> int:
        return min(self._window, len(self.filtered))

    @property
    def displayed(self) -> List[RecommendationCandidate]:
        return self.filtered[: self.displayed_count]

    @property
    def is_fetching_more(self) -> bool:
        return self.state == FeedState.FETCHING_MORE

    # --- lifecycle -----------------------------------------------------

    async def start(self) -> None:
        """Flash-render cached entries, then load the first city batch."""
        if self.state != FeedState.IDLE:
            return
        if self.needs_ratings:
            logger.debug("No rated restaurants yet, feed stays idle")
            return
        if not self.cities:
            logger.debug("No known cities, feed stays idle")
            return

        generation = self._generation
        self.state = FeedState.FETCHING_INITIAL
        self._hydrate_from_cache()

        await self._load_batch(self._next_cities(), generation)
        if generation != self._generation:
            return

        self._window = max(self._window, min(self.page_size, len(self.filtered)))
        self.state = FeedState.READY
        logger.debug(f"Feed ready: {len(self.all_loaded)} loaded, {self.displayed_count} shown")
        self._maybe_prefetch()

    def reset(
        self,
        rated: Optional[Iterable[RatedRestaurant]] = None,
        cities: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Return to Idle with empty lists. Fetches still in flight finish in the
        background but their results are discarded.
        """
        self._generation += 1
        if rated is not None:
            self.rated = list(rated)
        if cities is not None:
            self.cities = list(cities)
        elif rated is not None:
            self.cities = known_cities(self.rated)
        self.state = FeedState.IDLE
        self.all_loaded = []
        self.filtered = []
        self._window = 0
        self._cursor = 0
        self._round = 0
        self._prefetch_task = None

    # --- signals -------------------------------------------------------

    def on_visible(self) -> None:
        """
        Visibility signal from the consumer (end of list scrolled into view).

        Reveals the next page of loaded candidates. When there was more to
        reveal, or the remaining buffer runs low, also schedules a background
        fetch of more cities. Must be called from within a running event loop.
        """
        if self.state not in (FeedState.READY, FeedState.FETCHING_MORE):
            return
        shown = self.displayed_count
        had_more = shown < len(self.filtered)
        if had_more:
            self._window = min(shown + self.page_size, len(self.filtered))
        self._maybe_prefetch(force=had_more)

    def set_filters(
        self,
        cities: Optional[Iterable[str]] = None,
        price_ranges: Optional[Iterable[int]] = None,
    ) -> None:
        self.selected_cities = list(cities or [])
        self.selected_price_ranges = list(price_ranges or [])
        self._refilter()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._maybe_prefetch()

    async def wait_for_prefetch(self) -> None:
        """Await background fetches, including any follow-up they schedule."""
        while True:
            task = self._prefetch_task
            if task is None or task.done():
                return
            await task

    # --- internals -----------------------------------------------------

    def _refilter(self) -> None:
        self.filtered = filter_candidates(
            self.all_loaded, self.selected_cities, self.selected_price_ranges
        )

    def _rated_names(self) -> List[str]:
        return [r.name for r in self.rated if r.name]

    def _next_cities(self) -> List[str]:
        """Next batch of cities, round-robin with wrap-around."""
        total = len(self.cities)
        if total == 0:
            return []
        count = min(self.city_batch_size, total)
        batch = [self.cities[(self._cursor + i) % total] for i in range(count)]
        self._cursor = (self._cursor + self.city_batch_size) % total
        return batch

    def _hydrate_from_cache(self) -> None:
        """Merge every cached city entry, fresh or stale, for an instant first paint."""
        names = self._rated_names()
        for city in self.cities:
            entry = self.cache_store.get(city)
            if entry is None:
                continue
            cached = [c for c in entry.recommendations if not matches_any_rated(c.name, names)]
            self.all_loaded = merge_candidates(self.all_loaded, cached)
        self._refilter()
        if self.all_loaded:
            logger.debug(f"⚡ Flash render from cache: {len(self.all_loaded)} candidates")

    async def _load_city(self, city: str) -> List[RecommendationCandidate]:
        """Fresh cache hit, else search + enrich + persist. Never raises."""
        try:
            entry = self.cache_store.get(city)
            if entry is not None and is_fresh(entry, self.clock()):
                names = self._rated_names()
                logger.debug(f"💾 Fresh cache hit for '{city}'")
                return [c for c in entry.recommendations if not matches_any_rated(c.name, names)]

            prefs = build_taste_preferences(self.rated, city)
            batch = await self.fetch_city(city, prefs)
            batch = await self.enrich(batch)
            # An empty batch may be a swallowed failure; don't pin it for an hour
            if batch:
                self.cache_store.put(city, batch, self.clock())
            return batch
        except Exception as e:
            logger.debug(f"⚠️ Loading '{city}' failed: {e}")
            return []

    async def _load_batch(self, cities: List[str], generation: int) -> int:
        """
        Load cities concurrently, then merge under the single-writer lock.

        Returns the number of new candidates added, 0 when the results were
        discarded because the feed was reset meanwhile.
        """
        results = await asyncio.gather(*[self._load_city(c) for c in cities], return_exceptions=True)

        async with self._merge_lock:
            if generation != self._generation:
                logger.debug(f"Discarding late results for {cities}")
                return 0
            before = len(self.all_loaded)
            for city, result in zip(cities, results):
                if isinstance(result, Exception):
                    logger.debug(f"City load failed for '{city}': {result}")
                    continue
                seed = None if self.shuffle_seed is None else self.shuffle_seed + self._round
                self._round += 1
                self.all_loaded = merge_candidates(self.all_loaded, order_batch(result, seed))
            self._refilter()
            added = len(self.all_loaded) - before
        logger.debug(f"Merged {added} new candidates from {cities}")
        return added

    def _maybe_prefetch(self, force: bool = False) -> bool:
        if self.state != FeedState.READY:
            return False
        if not force and len(self.filtered) - self.displayed_count >= self.low_buffer:
            return False
        self.state = FeedState.FETCHING_MORE
        loop = asyncio.get_running_loop()
        cities = self._next_cities()
        self._prefetch_task = loop.create_task(self._prefetch(cities, self._generation))
        return True

    async def _prefetch(self, cities: List[str], generation: int) -> None:
        added = 0
        try:
            added = await self._load_batch(cities, generation)
        except Exception as e:
            logger.debug(f"⚠️ Prefetch failed: {e}")
        finally:
            if generation == self._generation and self.state == FeedState.FETCHING_MORE:
                self.state = FeedState.READY
        # Only a productive round may chain another; an exhausted city list stops here
        if added and generation == self._generation:
            self._maybe_prefetch()
