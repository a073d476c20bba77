"""
Embedding endpoint for search clients that embed queries themselves.
"""

from fastapi import APIRouter, Depends

from hubcontext.api.deps import get_embedding_service
from hubcontext.models.schemas import EmbeddingRequest, EmbeddingResponse
from hubcontext.services.embedding import EmbeddingService

router = APIRouter()


@router.post("/embedding", response_model=EmbeddingResponse)
async def generate_embedding(
    request: EmbeddingRequest,
    service: EmbeddingService = Depends(get_embedding_service),
):
    embedding = await service.embed_query(request.text)
    return EmbeddingResponse(embedding=embedding)
