"""
Metrics endpoints for the context performance dashboard.
"""

from fastapi import APIRouter, Depends

from hubcontext.api.deps import get_metrics_service
from hubcontext.models.schemas import PerformanceSummary, QualitySummary, Timeframe
from hubcontext.services.metrics import MetricsService

router = APIRouter()


@router.get("/performance", response_model=PerformanceSummary)
async def performance_metrics(
    timeframe: Timeframe = "week",
    service: MetricsService = Depends(get_metrics_service),
):
    """Latency, cache-hit and error rates for context retrieval."""
    return await service.performance_summary(timeframe)


@router.get("/quality", response_model=QualitySummary)
async def quality_metrics(
    timeframe: Timeframe = "week",
    service: MetricsService = Depends(get_metrics_service),
):
    """Similarity and result-count averages for context retrieval."""
    return await service.quality_summary(timeframe)
