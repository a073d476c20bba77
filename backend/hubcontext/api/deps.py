"""
Dependency providers for the API routes.

Services are built once from settings and shared across requests; tests
replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

import openai

from hubcontext.core.config import get_settings
from hubcontext.core.database import get_supabase_service
from hubcontext.services.chat import ChatService
from hubcontext.services.chunk_store import DocumentChunkStore
from hubcontext.services.context_cache import ContextCache, ContextCacheStore
from hubcontext.services.context_retrieval import ContextRetrievalService
from hubcontext.services.embedding import EmbeddingService, build_openai_client
from hubcontext.services.metrics import MetricsRecorder, MetricsService, MetricsStore


@lru_cache
def get_openai_client() -> openai.OpenAI:
    return build_openai_client(get_settings())


@lru_cache
def get_metrics_store() -> MetricsStore:
    return MetricsStore(get_supabase_service())


@lru_cache
def get_embedding_service() -> EmbeddingService:
    return EmbeddingService(get_settings(), client=get_openai_client())


@lru_cache
def get_retrieval_service() -> ContextRetrievalService:
    settings = get_settings()
    client = get_supabase_service()
    return ContextRetrievalService(
        embedder=get_embedding_service(),
        chunk_store=DocumentChunkStore(client),
        cache=ContextCache(ContextCacheStore(client), ttl_seconds=settings.context_cache_ttl_seconds),
        metrics=MetricsRecorder(get_metrics_store()),
        candidate_multiplier=settings.context_candidate_multiplier,
        hub_boost=settings.hub_boost_factor,
    )


@lru_cache
def get_chat_service() -> ChatService:
    return ChatService(
        get_settings(),
        metrics=MetricsRecorder(get_metrics_store()),
        supabase=get_supabase_service(),
        client=get_openai_client(),
    )


@lru_cache
def get_metrics_service() -> MetricsService:
    return MetricsService(get_metrics_store())
