"""
Context API endpoints.
Retrieves ranked document context for a query and generates responses
grounded in selected context.
"""

from fastapi import APIRouter, Depends

from hubcontext.api.deps import get_chat_service, get_retrieval_service
from hubcontext.models.schemas import (
    ContextRequest,
    ContextResponse,
    GenerateRequest,
    GenerateResponse,
)
from hubcontext.services.chat import ChatService
from hubcontext.services.context_retrieval import ContextRetrievalService

router = APIRouter()


@router.post("/retrieve", response_model=ContextResponse, response_model_exclude_none=True)
async def retrieve_context(
    request: ContextRequest,
    service: ContextRetrievalService = Depends(get_retrieval_service),
):
    """
    Retrieve document context for a query.

    - **query**: The text to find context for
    - **hubArea**: Optional hub area to favour
    - **similarityThreshold**: Minimum similarity (default 0.7)
    - **matchCount**: Number of results (default 5)
    - **useCached**: Read and write the result cache (default true)
    """
    return await service.retrieve(request)


@router.post("/respond", response_model=GenerateResponse, response_model_exclude_none=True)
async def generate_response(
    request: GenerateRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Generate a response from the query and the selected context chunks."""
    return await service.generate_response(request)
