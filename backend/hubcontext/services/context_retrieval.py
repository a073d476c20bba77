"""
Context retrieval service orchestrating the complete retrieval pipeline:
cache lookup, query embedding, vector search, hub-aware ranking, cache
write-through and metrics.
"""

import logging
import time
from typing import List, Optional

from hubcontext.core.exceptions import InputError
from hubcontext.models.schemas import (
    ContextRequest,
    ContextResponse,
    ContextResult,
    PerformanceInfo,
)
from hubcontext.services.chunk_store import DocumentChunkStore
from hubcontext.services.context_cache import ContextCache
from hubcontext.services.embedding import EmbeddingService
from hubcontext.services.metrics import MetricsRecorder, calculate_quality_metrics
from hubcontext.services.ranking import HUB_BOOST_FACTOR, rank_candidates

logger = logging.getLogger(__name__)

OPERATION_TYPE = 'context_retrieval'


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


class ContextRetrievalService:
    """Retrieves ranked document context for a query."""

    def __init__(
        self,
        embedder: EmbeddingService,
        chunk_store: DocumentChunkStore,
        cache: ContextCache,
        metrics: MetricsRecorder,
        candidate_multiplier: int = 2,
        hub_boost: float = HUB_BOOST_FACTOR,
    ):
        self.embedder = embedder
        self.chunk_store = chunk_store
        self.cache = cache
        self.metrics = metrics
        self.candidate_multiplier = candidate_multiplier
        self.hub_boost = hub_boost

    async def retrieve(self, request: ContextRequest) -> ContextResponse:
        """
        Process a query through the retrieval pipeline.

        Args:
            request: Query text, optional hub area and tuning parameters

        Returns:
            Ranked results and whether they came from the cache

        Raises:
            InputError: The query is empty
            UpstreamError: The embedding service failed after retries
            StorageError: The vector search failed
        """
        start_time = time.perf_counter()
        query = request.query
        hub_area = request.hub_area.value if request.hub_area else None
        cache_hit = False

        logger.info(
            f"Processing context retrieval: query={query[:50]!r} hub_area={hub_area} "
            f"threshold={request.similarity_threshold} match_count={request.match_count} "
            f"use_cached={request.use_cached}"
        )

        try:
            if not query or not query.strip():
                raise InputError("query must be a non-empty string")

            # Step 1: Cache lookup
            if request.use_cached:
                entry = await self.cache.get(query, hub_area)
                if entry is not None:
                    cache_hit = True
                    results = list(entry.results)
                    duration_ms = _elapsed_ms(start_time)
                    await self._record_performance(request, hub_area, duration_ms, True, len(results))
                    return ContextResponse(
                        results=results,
                        source="cache",
                        performance=PerformanceInfo(duration_ms=duration_ms, cache_hit=True),
                    )

            # Step 2: Live query
            results = await self._live_query(query, hub_area, request)
            quality = calculate_quality_metrics(r.similarity for r in results)

            # Step 3: Write-through
            if request.use_cached:
                await self.cache.put(query, hub_area, [r.model_dump(mode="json") for r in results])

            if request.track_metrics:
                await self.metrics.record_quality(
                    query=query,
                    hub_area=hub_area,
                    similarity_threshold=request.similarity_threshold,
                    match_count=request.match_count,
                    total_results=len(results),
                    quality=quality,
                    user_id=request.user_id,
                )

            duration_ms = _elapsed_ms(start_time)
            await self._record_performance(request, hub_area, duration_ms, False, len(results))
            logger.info(f"Context retrieval completed in {duration_ms}ms with {len(results)} results")

            return ContextResponse(
                results=results,
                source="live_query",
                performance=PerformanceInfo(
                    duration_ms=duration_ms,
                    cache_hit=False,
                    quality_metrics=quality,
                ),
            )

        except Exception as e:
            logger.error(f"Error in context retrieval: {e}")
            await self._record_performance(
                request, hub_area, _elapsed_ms(start_time), cache_hit, None,
                status='error', error_message=str(e),
            )
            raise

    async def _live_query(
        self,
        query: str,
        hub_area: Optional[str],
        request: ContextRequest,
    ) -> List[ContextResult]:
        """Embed, search and rank without touching the cache."""
        embedding = await self.embedder.embed_query(query)

        candidates = await self.chunk_store.match_chunks(
            embedding,
            similarity_threshold=request.similarity_threshold,
            match_count=request.match_count * self.candidate_multiplier,
            hub_area=hub_area,
        )
        if not candidates:
            return []

        ranked = rank_candidates(candidates, hub_area, request.match_count, boost=self.hub_boost)
        logger.info(f"Ranked {len(candidates)} candidates down to {len(ranked)} results")
        return [ContextResult.from_ranked(r) for r in ranked]

    async def _record_performance(
        self,
        request: ContextRequest,
        hub_area: Optional[str],
        duration_ms: int,
        cache_hit: bool,
        document_count: Optional[int],
        status: str = 'success',
        error_message: Optional[str] = None,
    ) -> None:
        if not request.track_metrics:
            return
        await self.metrics.record_performance(
            operation_type=OPERATION_TYPE,
            duration_ms=duration_ms,
            cache_hit=cache_hit,
            status=status,
            hub_area=hub_area,
            user_id=request.user_id,
            document_count=document_count,
            error_message=error_message,
        )
