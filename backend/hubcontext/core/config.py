"""
Configuration management for the Hub Context backend.
Handles environment variables and application settings.
"""

from typing import List
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    # Supabase Configuration
    supabase_url: str = Field(...)
    supabase_service_role_key: str = Field(...)

    # OpenAI/OpenRouter Configuration (for embeddings and response generation)
    # If using OpenRouter, set USE_OPENROUTER=true and provide OPENROUTER_API_KEY
    # If using OpenAI directly, provide OPENAI_API_KEY
    openai_api_key: str = Field(default="")
    openrouter_api_key: str = Field(default="")
    use_openrouter: bool = Field(default=False)

    @property
    def openai_embed_model(self) -> str:
        """Get embedding model name based on provider."""
        if self.use_openrouter:
            return "openai/text-embedding-3-small"
        return "text-embedding-3-small"

    @property
    def openai_chat_model(self) -> str:
        """Get chat model name based on provider."""
        if self.use_openrouter:
            return "openai/gpt-4o-mini"
        return "gpt-4o-mini"

    # Application Configuration
    log_level: str = "INFO"
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        validation_alias="CORS_ORIGINS",
        exclude=True  # Don't include in model output
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # Embedding Configuration
    embedding_dimensions: int = 1536  # text-embedding-3-small dimensions
    embedding_max_input_chars: int = 8000

    # Context Retrieval Configuration
    context_similarity_threshold: float = 0.7
    context_match_count: int = 5
    context_candidate_multiplier: int = 2  # headroom for re-ranking
    hub_boost_factor: float = 1.2
    context_cache_ttl_seconds: int = 3600

    # Retry policy for remote embedding calls
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_jitter: float = 0.1

    # Response generation
    chat_temperature: float = 0.3
    chat_context_char_limit: int = 1500


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
