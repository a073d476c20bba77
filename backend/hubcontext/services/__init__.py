"""
Context retrieval services
"""

from .chunk_store import DocumentChunkStore
from .context_cache import ContextCache, ContextCacheStore, make_cache_key
from .context_retrieval import ContextRetrievalService
from .embedding import EmbeddingService
from .metrics import MetricsRecorder, MetricsService, MetricsStore
from .ranking import rank_candidates

__all__ = [
    'DocumentChunkStore',
    'ContextCache',
    'ContextCacheStore',
    'make_cache_key',
    'ContextRetrievalService',
    'EmbeddingService',
    'MetricsRecorder',
    'MetricsService',
    'MetricsStore',
    'rank_candidates',
]
