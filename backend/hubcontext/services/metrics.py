"""
Performance and retrieval-quality metrics.

Recording is best-effort: a failed insert is logged and dropped so it can
never fail the request being measured. The summaries aggregate recorded
rows for the admin dashboard.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from supabase import Client

from hubcontext.core.exceptions import MetricsError, StorageError
from hubcontext.models.schemas import (
    HubPerformance,
    HubQuality,
    PerformanceSummary,
    QualityMetrics,
    QualitySummary,
)

logger = logging.getLogger(__name__)

TIMEFRAME_DAYS = {"day": 1, "week": 7, "month": 30}


class MetricsStore:
    """Inserts into and reads from the metrics tables."""

    def __init__(self, client: Client):
        self.client = client

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        try:
            self.client.table(table).insert(row).execute()
        except Exception as e:
            raise MetricsError(f"Failed to insert into {table}: {e}") from e

    async def fetch_since(self, table: str, since: datetime) -> List[Dict[str, Any]]:
        try:
            result = self.client.table(table).select('*').gte(
                'created_at', since.isoformat()
            ).execute()
        except Exception as e:
            logger.error(f"Failed to load {table}: {e}")
            raise StorageError(f"Failed to load {table}: {e}") from e
        return result.data or []


class MetricsRecorder:
    """Fire-and-forget writer for performance and quality metrics."""

    def __init__(self, store: MetricsStore):
        self.store = store

    async def record_performance(
        self,
        operation_type: str,
        duration_ms: int,
        cache_hit: bool,
        status: str,
        hub_area: Optional[str] = None,
        user_id: Optional[str] = None,
        document_count: Optional[int] = None,
        error_message: Optional[str] = None,
        operation_details: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._insert('performance_metrics', {
            'operation_type': operation_type,
            'operation_details': operation_details or {},
            'duration_ms': duration_ms,
            'cache_hit': cache_hit,
            'hub_area': hub_area,
            'user_id': user_id,
            'document_count': document_count,
            'status': status,
            'error_message': error_message,
        })

    async def record_quality(
        self,
        query: str,
        hub_area: Optional[str],
        similarity_threshold: float,
        match_count: int,
        total_results: int,
        quality: QualityMetrics,
        user_id: Optional[str] = None,
    ) -> None:
        await self._insert('retrieval_quality_metrics', {
            'query': query,
            'hub_area': hub_area,
            'similarity_threshold': similarity_threshold,
            'match_count': match_count,
            'total_results': total_results,
            'avg_similarity': quality.avg_similarity,
            'max_similarity': quality.max_similarity,
            'min_similarity': quality.min_similarity,
            'user_id': user_id,
        })

    async def _insert(self, table: str, row: Dict[str, Any]) -> None:
        try:
            await self.store.insert(table, row)
        except Exception as e:
            logger.error(f"Failed to record {table}: {e}")


def calculate_quality_metrics(similarities: Iterable[float]) -> QualityMetrics:
    """Average, max and min similarity; all zero for an empty result set."""
    values = list(similarities)
    if not values:
        return QualityMetrics()
    return QualityMetrics(
        avg_similarity=sum(values) / len(values),
        max_similarity=max(values),
        min_similarity=min(values),
    )


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _group_by_hub(rows: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for row in rows:
        groups[row.get('hub_area') or 'unknown'].append(row)
    return groups


def summarize_performance(rows: List[Dict[str, Any]], timeframe: str) -> PerformanceSummary:
    """Aggregate ``performance_metrics`` rows for the dashboard."""
    context_rows = [r for r in rows if r.get('operation_type') == 'context_retrieval']
    generation_rows = [r for r in rows if r.get('operation_type') == 'response_generation']

    total = len(context_rows)
    by_hub_area = {
        hub: HubPerformance(
            average_duration=_average([r.get('duration_ms') or 0 for r in hub_rows]),
            cache_hit_rate=sum(1 for r in hub_rows if r.get('cache_hit')) / len(hub_rows),
            count=len(hub_rows),
        )
        for hub, hub_rows in _group_by_hub(context_rows).items()
    }

    return PerformanceSummary(
        average_duration=_average([r.get('duration_ms') or 0 for r in context_rows]),
        cache_hit_rate=sum(1 for r in context_rows if r.get('cache_hit')) / total if total else 0.0,
        error_rate=sum(1 for r in context_rows if r.get('status') == 'error') / total if total else 0.0,
        total_queries=total,
        response_generation_avg=_average([r.get('duration_ms') or 0 for r in generation_rows]),
        by_hub_area=by_hub_area,
        timeframe=timeframe,
    )


def summarize_quality(rows: List[Dict[str, Any]], timeframe: str) -> QualitySummary:
    """Aggregate ``retrieval_quality_metrics`` rows for the dashboard."""
    by_hub_area = {
        hub: HubQuality(
            avg_similarity=_average([r.get('avg_similarity') or 0.0 for r in hub_rows]),
            avg_result_count=_average([r.get('total_results') or 0 for r in hub_rows]),
            count=len(hub_rows),
        )
        for hub, hub_rows in _group_by_hub(rows).items()
    }
    return QualitySummary(
        avg_similarity=_average([r.get('avg_similarity') or 0.0 for r in rows]),
        avg_result_count=_average([r.get('total_results') or 0 for r in rows]),
        by_hub_area=by_hub_area,
        timeframe=timeframe,
    )


class MetricsService:
    """Loads recorded metrics for a dashboard timeframe."""

    def __init__(self, store: MetricsStore, clock=lambda: datetime.now(timezone.utc)):
        self.store = store
        self.clock = clock

    def _since(self, timeframe: str) -> datetime:
        return self.clock() - timedelta(days=TIMEFRAME_DAYS[timeframe])

    async def performance_summary(self, timeframe: str = "week") -> PerformanceSummary:
        rows = await self.store.fetch_since('performance_metrics', self._since(timeframe))
        return summarize_performance(rows, timeframe)

    async def quality_summary(self, timeframe: str = "week") -> QualitySummary:
        rows = await self.store.fetch_since('retrieval_quality_metrics', self._since(timeframe))
        return summarize_quality(rows, timeframe)
