"""
Shared test fixtures.

Settings are read from the environment at import time, so the required
Supabase values are set here before any ``hubcontext`` module is imported.
In-memory stores stand in for the Supabase tables.
"""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from hubcontext.core.config import Settings
from hubcontext.models.schemas import Chunk, ChunkMetadata


class FakeClock:
    """Controllable clock for cache expiry tests."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryCacheStore:
    """Dict-backed replacement for ContextCacheStore."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fetches = 0
        self.upserts = 0

    async def fetch(self, cache_key: str) -> Optional[Dict[str, Any]]:
        self.fetches += 1
        row = self.rows.get(cache_key)
        return dict(row) if row else None

    async def record_hit(self, cache_key: str, hit_count: int, accessed_at: datetime) -> None:
        self.rows[cache_key]['hit_count'] = hit_count
        self.rows[cache_key]['last_accessed'] = accessed_at.isoformat()

    async def upsert(self, row: Dict[str, Any]) -> None:
        self.upserts += 1
        self.rows[row['cache_key']] = dict(row)


class InMemoryMetricsStore:
    """Collects inserted metric rows per table."""

    def __init__(self, rows: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = rows or {}

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        self.tables.setdefault(table, []).append(row)

    async def fetch_since(self, table: str, since: datetime) -> List[Dict[str, Any]]:
        return list(self.tables.get(table, []))


class FakeEmbedder:
    def __init__(self, vector: Optional[List[float]] = None, error: Optional[Exception] = None):
        self.vector = vector or [0.1] * 1536
        self.error = error
        self.calls: List[str] = []

    async def embed_query(self, query: str) -> List[float]:
        self.calls.append(query)
        if self.error:
            raise self.error
        return self.vector


class FakeChunkStore:
    def __init__(self, chunks: Optional[List[Chunk]] = None, error: Optional[Exception] = None):
        self.chunks = chunks or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def match_chunks(self, query_embedding, similarity_threshold, match_count, hub_area=None):
        self.calls.append({
            'similarity_threshold': similarity_threshold,
            'match_count': match_count,
            'hub_area': hub_area,
        })
        if self.error:
            raise self.error
        return [c for c in self.chunks if c.similarity >= similarity_threshold][:match_count]


def make_chunk(
    chunk_id: str = "chunk-1",
    similarity: float = 0.8,
    content: str = "Quarterly marketing plan overview.",
    title: str = "",
    hub_areas: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    document_id: str = "doc-1",
) -> Chunk:
    return Chunk(
        id=chunk_id,
        document_id=document_id,
        content=content,
        chunk_index=0,
        metadata=ChunkMetadata.from_raw(metadata),
        similarity=similarity,
        document_title=title,
        document_hub_areas=hub_areas or [],
    )


def embedding_response(vector: List[float]):
    """Shape of ``openai.OpenAI().embeddings.create`` responses."""
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        supabase_url="http://localhost:54321",
        supabase_service_role_key="test-service-role-key",
        openai_api_key="test-openai-key",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def metrics_store() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()
