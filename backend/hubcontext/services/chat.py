"""
Chat service for generating answers from retrieved document context
using an LLM (OpenAI or OpenRouter).
"""

import logging
import time
from typing import List, Optional

import openai
from supabase import Client

from hubcontext.core.config import Settings
from hubcontext.core.exceptions import UpstreamError, status_for_upstream
from hubcontext.models.schemas import (
    Citation,
    ContextChunkInput,
    GenerateRequest,
    GenerateResponse,
    PerformanceInfo,
)
from hubcontext.services.embedding import build_openai_client
from hubcontext.services.metrics import MetricsRecorder
from hubcontext.services.ranking import citation_excerpt

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a business assistant for the {hub} hub. Answer the question using "
    "the provided document context. Cite context blocks by their number, and say "
    "so when the context does not contain the answer."
)


class ChatService:
    """Service for generating answers using OpenAI or OpenRouter Chat API."""

    def __init__(
        self,
        settings: Settings,
        metrics: MetricsRecorder,
        supabase: Client,
        client: Optional[openai.OpenAI] = None,
    ):
        self.openai_client = client or build_openai_client(settings)
        self.chat_model = settings.openai_chat_model
        self.temperature = settings.chat_temperature
        self.context_char_limit = settings.chat_context_char_limit
        self.metrics = metrics
        self.supabase = supabase

    def _build_messages(self, query: str, chunks: List[ContextChunkInput], hub_area: Optional[str]):
        context_parts = []
        for i, chunk in enumerate(chunks, 1):
            text = chunk.content
            # Truncate very long texts to save tokens
            if len(text) > self.context_char_limit:
                text = text[:self.context_char_limit] + "..."
            context_parts.append(f"[{i}] {text}")

        context_text = "\n".join(context_parts) if context_parts else "(no context provided)"
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(hub=hub_area or "general")},
            {"role": "user", "content": f"Context:\n{context_text}\n\nQ: {query}\nA:"},
        ]

    async def generate_answer(
        self,
        query: str,
        context_chunks: List[ContextChunkInput],
        hub_area: Optional[str] = None,
    ) -> str:
        """
        Generate answer using LLM with retrieved context.

        Args:
            query: User's question
            context_chunks: Context chunks selected by the user
            hub_area: Hub area the question belongs to

        Returns:
            Generated answer text
        """
        try:
            response = self.openai_client.chat.completions.create(
                model=self.chat_model,
                messages=self._build_messages(query, context_chunks, hub_area),
                temperature=self.temperature
            )
        except openai.APIStatusError as e:
            logger.error(f"Failed to generate answer: {e}")
            raise UpstreamError(
                f"Chat completion error: {e.status_code} {e.message}",
                status_for_upstream(e.status_code),
                e.status_code,
            ) from e
        except openai.OpenAIError as e:
            logger.error(f"Failed to generate answer: {e}")
            raise UpstreamError(f"Chat completion error: {e}", status_for_upstream(None)) from e

        answer = response.choices[0].message.content or ""
        logger.info(f"Generated answer for query: {query[:50]}...")
        return answer

    async def generate_response(self, request: GenerateRequest) -> GenerateResponse:
        """Answer a query from context chunks, store citations and record metrics."""
        start_time = time.perf_counter()
        hub_area = request.hub_area.value if request.hub_area else None

        logger.info(
            f"Generating response with context: query={request.query[:50]!r} "
            f"chunks={len(request.context_chunks)} hub_area={hub_area}"
        )

        try:
            content = await self.generate_answer(request.query, request.context_chunks, hub_area)
        except Exception as e:
            if request.track_metrics:
                await self.metrics.record_performance(
                    operation_type='response_generation',
                    duration_ms=int((time.perf_counter() - start_time) * 1000),
                    cache_hit=False,
                    status='error',
                    hub_area=hub_area,
                    user_id=request.user_id,
                    error_message=str(e),
                )
            raise

        citations = [
            Citation(
                document_id=chunk.document_id,
                context=citation_excerpt(chunk.content),
                relevance=chunk.similarity,
            )
            for chunk in request.context_chunks
        ]

        if request.prompt_generation_id and citations:
            await self._store_references(request.prompt_generation_id, citations)

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        if request.track_metrics:
            await self.metrics.record_performance(
                operation_type='response_generation',
                duration_ms=duration_ms,
                cache_hit=False,
                status='success',
                hub_area=hub_area,
                user_id=request.user_id,
                document_count=len(request.context_chunks),
                operation_details={
                    'contextChunksCount': len(request.context_chunks),
                    'citationsCount': len(citations),
                    'responseLength': len(content),
                },
            )

        return GenerateResponse(
            content=content,
            citations=citations,
            performance=PerformanceInfo(duration_ms=duration_ms, cache_hit=False),
        )

    async def _store_references(self, prompt_generation_id: str, citations: List[Citation]) -> None:
        """Store document references for a prompt generation. Failures are only logged."""
        rows = [
            {
                'document_id': citation.document_id,
                'citation_context': citation.context,
                'relevance_score': citation.relevance,
                'prompt_generation_id': prompt_generation_id,
            }
            for citation in citations
        ]
        try:
            self.supabase.table('document_references').insert(rows).execute()
            logger.info(f"Stored {len(rows)} document references")
        except Exception as e:
            logger.error(f"Error storing document references: {e}")
