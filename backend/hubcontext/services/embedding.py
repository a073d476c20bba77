"""
Embedding service for generating query embeddings using OpenAI or OpenRouter.
"""

import logging
from typing import List, Optional

import openai

from hubcontext.core.config import Settings
from hubcontext.core.exceptions import (
    EmbeddingAuthError,
    EmbeddingServiceError,
    EmbeddingTransientError,
    InputError,
    status_for_upstream,
)
from hubcontext.services.retry import with_retry

logger = logging.getLogger(__name__)


def build_openai_client(settings: Settings) -> openai.OpenAI:
    """Create the OpenAI/OpenRouter client used for embeddings and chat."""
    if settings.use_openrouter and settings.openrouter_api_key:
        api_key = settings.openrouter_api_key
        base_url = "https://openrouter.ai/api/v1"
        default_headers = {"X-Title": "Hub Context"}
        logger.info(f"Using OpenRouter: {base_url}")
    else:
        api_key = settings.openai_api_key
        base_url = None  # OpenAI default base_url
        default_headers = {}
        logger.info("Using OpenAI")

    # Retries are handled by with_retry, not by the SDK
    return openai.OpenAI(
        api_key=api_key,
        base_url=base_url,
        default_headers=default_headers if default_headers else None,
        max_retries=0,
    )


def translate_openai_error(error: Exception) -> EmbeddingServiceError:
    """Classify an OpenAI SDK error into the embedding error taxonomy."""
    if isinstance(error, openai.APIStatusError):
        upstream = error.status_code
        message = f"Embedding API error: {upstream} {error.message}"
        if upstream in (401, 403):
            return EmbeddingAuthError(message, status_for_upstream(upstream), upstream)
        if upstream == 429 or upstream >= 500:
            return EmbeddingTransientError(message, status_for_upstream(upstream), upstream)
        return EmbeddingServiceError(message, status_for_upstream(upstream), upstream)
    if isinstance(error, openai.APIConnectionError):  # includes APITimeoutError
        return EmbeddingTransientError(f"Embedding API network error: {error}", status_for_upstream(None))
    return EmbeddingServiceError(f"Embedding API error: {error}")


class EmbeddingService:
    """Service for generating text embeddings using OpenAI or OpenRouter."""

    def __init__(self, settings: Settings, client: Optional[openai.OpenAI] = None):
        self.openai_client = client or build_openai_client(settings)
        self.embed_model = settings.openai_embed_model
        self.dimensions = settings.embedding_dimensions
        self.max_input_chars = settings.embedding_max_input_chars
        self.retry_options = {
            "attempts": settings.retry_max_attempts,
            "base_delay": settings.retry_base_delay,
            "max_delay": settings.retry_max_delay,
            "jitter": settings.retry_jitter,
        }

    async def _request_embedding(self, text: str) -> List[float]:
        """Single embedding call, without retries."""
        logger.info(f"Generating embedding for text of length: {len(text)}")
        try:
            response = self.openai_client.embeddings.create(
                model=self.embed_model,
                input=text
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e

        data = getattr(response, "data", None)
        if not data:
            raise EmbeddingServiceError("Embedding API returned no data")

        embedding = getattr(data[0], "embedding", None)
        if not embedding:
            raise EmbeddingServiceError("Embedding API returned an empty vector")
        if self.dimensions and len(embedding) != self.dimensions:
            raise EmbeddingServiceError(
                f"Embedding API returned {len(embedding)} dimensions, expected {self.dimensions}"
            )
        return list(embedding)

    async def embed_query(self, query: str, **retry_overrides) -> List[float]:
        """
        Generate embedding for a single query.

        Args:
            query: Query text to embed (truncated to the model's input limit)
            retry_overrides: Overrides for the retry policy (e.g. ``sleep`` in tests)

        Returns:
            Embedding vector (1536 dimensions for text-embedding-3-small)
        """
        if not query or not query.strip():
            raise InputError("Cannot embed an empty query")

        text = query[:self.max_input_chars]
        options = {**self.retry_options, **retry_overrides}
        try:
            return await with_retry(self._request_embedding, text, **options)
        except EmbeddingServiceError as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise
