"""
Pydantic schemas for request/response models
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class HubArea(str, Enum):
    """Business areas documents and prompts are organised under."""
    MARKETING = "marketing"
    SALES = "sales"
    PRODUCTION = "production"
    TEAM = "team"
    STRATEGY = "strategy"
    FINANCIALS = "financials"
    LEADERSHIP = "leadership"


class CamelModel(BaseModel):
    """Model accepting and emitting camelCase keys, as the web client sends them."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Chunks and ranking
# =============================================================================

class ChunkMetadata(BaseModel):
    """Typed view over a chunk's free-form metadata map."""
    position: Optional[str] = None  # descriptive position label, e.g. "introduction"
    importance: Optional[float] = None  # 0..1
    extensions: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "ChunkMetadata":
        """Build from the metadata JSON stored with the chunk.

        Unknown keys are kept in ``extensions``; a label that is not a
        non-empty string or an importance that is not numeric is ignored.
        """
        if not isinstance(raw, dict):
            return cls()

        extensions = dict(raw)
        position = extensions.pop("position", None)
        importance = extensions.pop("importance", None)

        if not isinstance(position, str) or not position.strip():
            position = None
        if isinstance(importance, bool) or not isinstance(importance, (int, float)):
            importance = None

        return cls(position=position, importance=importance, extensions=extensions)


class Chunk(BaseModel):
    """A stored document chunk returned by the vector search, with its document denormalized."""
    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    content: str
    chunk_index: int = 0
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
    similarity: float
    document_title: str = ""
    document_hub_areas: List[str] = Field(default_factory=list)


class RankedResult(BaseModel):
    """A chunk after hub weighting and quality scoring."""
    chunk: Chunk
    weighted_similarity: float
    quality_score: float
    citation_context: str


class ContextResult(BaseModel):
    """One entry of the ``results`` array returned to the caller."""
    chunk_id: str
    document_id: str
    document_title: str
    content: str
    citation_context: str
    relevance_score: float
    similarity: float
    hub_areas: List[str] = Field(default_factory=list)

    @classmethod
    def from_ranked(cls, ranked: RankedResult) -> "ContextResult":
        chunk = ranked.chunk
        return cls(
            chunk_id=chunk.id,
            document_id=chunk.document_id,
            document_title=chunk.document_title,
            content=chunk.content,
            citation_context=ranked.citation_context,
            relevance_score=ranked.quality_score,
            similarity=chunk.similarity,
            hub_areas=list(chunk.document_hub_areas),
        )


class CacheEntry(BaseModel):
    """A row of the ``context_cache`` table."""
    cache_key: str
    query: str
    hub_area: Optional[str] = None
    results: List[ContextResult] = Field(default_factory=list)
    hit_count: int = 0
    last_accessed: Optional[datetime] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("hit_count", mode="before")
    @classmethod
    def null_hit_count_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    def is_fresh(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:  # timestamp columns without time zone hold UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now < expires_at


# =============================================================================
# Context retrieval API
# =============================================================================

class ContextRequest(CamelModel):
    """Request body for context retrieval."""
    query: str
    hub_area: Optional[HubArea] = None
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    match_count: int = Field(default=5, gt=0)
    use_cached: bool = True
    user_id: Optional[str] = None
    track_metrics: bool = True

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("query must be a non-empty string")
        return value


class QualityMetrics(CamelModel):
    """Similarity statistics over a result set."""
    avg_similarity: float = 0.0
    max_similarity: float = 0.0
    min_similarity: float = 0.0


class PerformanceInfo(CamelModel):
    duration_ms: int
    cache_hit: bool
    quality_metrics: Optional[QualityMetrics] = None


class ContextResponse(CamelModel):
    """Response body for context retrieval."""
    results: List[ContextResult]
    source: Literal["cache", "live_query"]
    performance: Optional[PerformanceInfo] = None


# =============================================================================
# Response generation API
# =============================================================================

class ContextChunkInput(CamelModel):
    """A context chunk the client selected for response generation."""
    content: str
    document_id: str
    similarity: float = 0.0


class GenerateRequest(CamelModel):
    query: str
    context_chunks: List[ContextChunkInput] = Field(default_factory=list)
    hub_area: Optional[HubArea] = None
    user_id: Optional[str] = None
    prompt_generation_id: Optional[str] = None
    track_metrics: bool = True

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("query must be a non-empty string")
        return value


class Citation(BaseModel):
    document_id: str
    context: str
    relevance: float


class GenerateResponse(CamelModel):
    content: str
    citations: List[Citation]
    performance: Optional[PerformanceInfo] = None


# =============================================================================
# Embedding API
# =============================================================================

class EmbeddingRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Missing text in request body")
        return value


class EmbeddingResponse(BaseModel):
    embedding: List[float]


# =============================================================================
# Metrics summaries
# =============================================================================

Timeframe = Literal["day", "week", "month"]


class HubPerformance(CamelModel):
    average_duration: float
    cache_hit_rate: float
    count: int


class PerformanceSummary(CamelModel):
    average_duration: float
    cache_hit_rate: float
    error_rate: float
    total_queries: int
    response_generation_avg: float
    by_hub_area: Dict[str, HubPerformance]
    timeframe: str


class HubQuality(CamelModel):
    avg_similarity: float
    avg_result_count: float
    count: int


class QualitySummary(CamelModel):
    avg_similarity: float
    avg_result_count: float
    by_hub_area: Dict[str, HubQuality]
    timeframe: str
