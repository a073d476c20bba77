"""
Hub-aware re-ranking of retrieved chunks.

Candidates from the vector search are weighted towards the requested hub
area, scored for quality, sorted and truncated. Ties keep the search order.
"""

from typing import List, Optional

from hubcontext.models.schemas import Chunk, RankedResult

HUB_BOOST_FACTOR = 1.2
POSITION_BONUS = 0.05
IMPORTANCE_BONUS = 0.1
TITLE_BONUS = 0.05
TITLE_LENGTH_CAP = 200
CITATION_LENGTH = 200


def hub_weighted_similarity(
    chunk: Chunk,
    hub_area: Optional[str],
    boost: float = HUB_BOOST_FACTOR,
) -> float:
    """Raw similarity, scaled by ``boost`` when the chunk's document belongs to ``hub_area``."""
    if hub_area and hub_area in chunk.document_hub_areas:
        return chunk.similarity * boost
    return chunk.similarity


def quality_score(chunk: Chunk, weighted_similarity: float) -> float:
    """Weighted similarity plus metadata and title bonuses."""
    score = weighted_similarity

    metadata = chunk.metadata
    if metadata.position:
        score += POSITION_BONUS
    if metadata.importance is not None:
        score += IMPORTANCE_BONUS * min(max(metadata.importance, 0.0), 1.0)

    title_ratio = min(len(chunk.document_title) / TITLE_LENGTH_CAP, 1.0)
    score += TITLE_BONUS * title_ratio
    return score


def citation_excerpt(content: str, limit: int = CITATION_LENGTH) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def rank_candidates(
    candidates: List[Chunk],
    hub_area: Optional[str],
    match_count: int,
    boost: float = HUB_BOOST_FACTOR,
) -> List[RankedResult]:
    """
    Re-rank raw candidates for a query.

    Args:
        candidates: Chunks from the vector search, best raw similarity first
        hub_area: Hub area the query targets, if any
        match_count: Maximum number of results to keep
        boost: Multiplier for chunks whose document is in ``hub_area``

    Returns:
        At most ``match_count`` results ordered by quality score descending
    """
    ranked = []
    for chunk in candidates:
        weighted = hub_weighted_similarity(chunk, hub_area, boost)
        ranked.append(RankedResult(
            chunk=chunk,
            weighted_similarity=weighted,
            quality_score=quality_score(chunk, weighted),
            citation_context=citation_excerpt(chunk.content),
        ))

    # sorted() is stable
    ranked = sorted(ranked, key=lambda r: r.quality_score, reverse=True)
    return ranked[:max(match_count, 0)]
