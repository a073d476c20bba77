"""
Result cache for context retrieval, stored in the ``context_cache`` table.

Entries are keyed by the normalized query and hub area and expire at an
explicit ``expires_at`` timestamp. Writes upsert on the key and reset the
hit counter; hits bump the counter and ``last_accessed``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from supabase import Client

from hubcontext.models.schemas import CacheEntry

logger = logging.getLogger(__name__)

ALL_HUBS = "all"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_cache_key(query: str, hub_area: Optional[str]) -> str:
    """Lower-cased, trimmed query joined with the hub area (or ``all``)."""
    return f"{query.strip().lower()}_{hub_area or ALL_HUBS}"


class ContextCacheStore:
    """Row access for the ``context_cache`` table."""

    def __init__(self, client: Client):
        self.client = client

    async def fetch(self, cache_key: str) -> Optional[Dict[str, Any]]:
        result = self.client.table('context_cache').select('*').eq(
            'cache_key', cache_key
        ).limit(1).execute()
        return result.data[0] if result.data else None

    async def record_hit(self, cache_key: str, hit_count: int, accessed_at: datetime) -> None:
        self.client.table('context_cache').update({
            'hit_count': hit_count,
            'last_accessed': accessed_at.isoformat(),
        }).eq('cache_key', cache_key).execute()

    async def upsert(self, row: Dict[str, Any]) -> None:
        self.client.table('context_cache').upsert(row, on_conflict='cache_key').execute()


class ContextCache:
    """Cache layer in front of the retrieval pipeline."""

    def __init__(
        self,
        store: ContextCacheStore,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    async def get(self, query: str, hub_area: Optional[str]) -> Optional[CacheEntry]:
        """
        Look up a fresh entry.

        Returns:
            The entry with its hit counter already bumped, or None on a miss.
            Expired rows, rows that do not match the result schema and read
            failures count as misses.
        """
        cache_key = make_cache_key(query, hub_area)
        try:
            row = await self.store.fetch(cache_key)
        except Exception as e:
            logger.error(f"Cache read failed for key {cache_key[:50]}: {e}")
            return None

        if row is None:
            return None

        try:
            entry = CacheEntry.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cache row for key {cache_key[:50]}: {e.error_count()} errors")
            return None

        now = self.clock()
        if not entry.is_fresh(now):
            logger.info(f"Cache entry expired for query: {query[:50]}")
            return None

        entry.hit_count += 1
        entry.last_accessed = now
        try:
            await self.store.record_hit(cache_key, entry.hit_count, now)
        except Exception as e:
            logger.error(f"Failed to update cache hit count: {e}")

        logger.info(f"Cache hit for query: {query[:50]}")
        return entry

    async def put(self, query: str, hub_area: Optional[str], results: List[Dict[str, Any]]) -> None:
        """Upsert the result payload under the query's key. Failures are logged, never raised."""
        now = self.clock()
        row = {
            'cache_key': make_cache_key(query, hub_area),
            'query': query,
            'hub_area': hub_area,
            'results': results,
            'hit_count': 0,
            'created_at': now.isoformat(),
            'last_accessed': now.isoformat(),
            'expires_at': (now + self.ttl).isoformat(),
        }
        try:
            await self.store.upsert(row)
        except Exception as e:
            logger.error(f"Failed to write cache entry: {e}")
