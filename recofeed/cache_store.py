"""
City-keyed cache of recommendation batches over an injected key-value store.

The store never decides freshness; callers evaluate `is_fresh` against their
own clock. Unreadable entries are reported as misses.
"""
import json
import time
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from loguru import logger

from recofeed.config import CACHE_FRESHNESS_MS, CACHE_KEY_PREFIX, CACHE_VERSION
from recofeed.models import CacheEntry, RecommendationCandidate


class KeyValueStore(Protocol):
    """String-keyed blob store."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store, used in tests and short-lived sessions."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore:
    """One file per key under a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._path(key).write_text(value, encoding="utf-8")


def now_millis() -> int:
    return int(time.time() * 1000)


def cache_key(city: str) -> str:
    """Namespaced, versioned key; bumping CACHE_VERSION orphans old entries."""
    return f"{CACHE_KEY_PREFIX}_{city.strip().lower()}_{CACHE_VERSION}"


def is_fresh(entry: CacheEntry, now_ms: int, window_ms: int = CACHE_FRESHNESS_MS) -> bool:
    return now_ms - entry.fetched_at_epoch_millis < window_ms


def _candidate_from_dict(raw: dict) -> RecommendationCandidate:
    coords = raw.get("coordinates")
    return RecommendationCandidate(
        external_id=str(raw["external_id"]),
        name=str(raw["name"]),
        cuisine=str(raw["cuisine"]),
        address=str(raw.get("address") or ""),
        city=str(raw["city"]),
        rating=raw.get("rating"),
        price_level=raw.get("price_level"),
        opening_hours_summary=raw.get("opening_hours_summary"),
        is_open_now=raw.get("is_open_now"),
        photos=list(raw.get("photos") or []),
        coordinates=(float(coords[0]), float(coords[1])) if coords else None,
        types=list(raw.get("types") or []),
    )


class CacheStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, city: str) -> Optional[CacheEntry]:
        """Return the cached entry for `city`, or None when absent or unreadable."""
        try:
            blob = self.store.get(cache_key(city))
            if blob is None:
                return None
            payload = json.loads(blob)
            # Distinct cities can share a sanitized file name
            if str(payload["city"]).strip().lower() != city.strip().lower():
                logger.debug(f"🗑️ Cache entry for '{payload['city']}' does not belong to '{city}'")
                return None
            return CacheEntry(
                city=str(payload["city"]),
                recommendations=[_candidate_from_dict(r) for r in payload["recommendations"]],
                fetched_at_epoch_millis=int(payload["fetched_at_epoch_millis"]),
            )
        except Exception as e:
            logger.debug(f"🗑️ Ignoring unreadable cache entry for '{city}': {e}")
            return None

    def put(
        self,
        city: str,
        recommendations: List[RecommendationCandidate],
        fetched_at_ms: Optional[int] = None,
    ) -> None:
        """Overwrite the entry for `city`. Write failures are logged, not raised."""
        entry = {
            "city": city,
            "recommendations": [asdict(r) for r in recommendations],
            "fetched_at_epoch_millis": fetched_at_ms if fetched_at_ms is not None else now_millis(),
        }
        try:
            self.store.set(cache_key(city), json.dumps(entry))
        except Exception as e:
            logger.debug(f"⚠️ Could not persist cache entry for '{city}': {e}")
