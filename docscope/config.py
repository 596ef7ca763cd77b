"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docscope.models.common import Category


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="DOCSCOPE_", extra="ignore"
    )

    # Catalog database
    database_url: str = "sqlite+aiosqlite:///./docscope.db"

    # Chunking
    chunk_size: int = Field(1500, gt=0)
    chunk_overlap: int = Field(150, ge=0)
    chunk_strategy: Literal["sentence", "fixed"] = "sentence"
    chunk_source_prefix: bool = True

    # Retrieval
    retrieval_top_k: int = Field(5, ge=1)
    include_global_by_default: bool = False

    # Context switching
    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
    triggers_file: str | None = None

    # Category limits (documents per session category)
    category_document_limit: int = Field(20, ge=1)
    category_limit_overrides: dict[Category, int] = Field(default_factory=dict)

    # Provider call policy
    provider_call_delay_ms: int = Field(0, ge=0)
    provider_timeout_ms: int = Field(60000, gt=0)
    provider_retry_count: int = Field(1, ge=0)
    provider_retry_jitter_min_ms: int = 200
    provider_retry_jitter_max_ms: int = 500
    embedding_concurrency: int = Field(8, ge=1)

    # OpenAI (embeddings + completions)
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"

    # OCR
    mistral_api_key: SecretStr | None = None
    mistral_ocr_model: str = "mistral-ocr-latest"
    mistral_ocr_url: str = "https://api.mistral.ai/v1/ocr"

    # Form filling: directory of <slot>.schema.json and optional <slot>.prompt.txt
    forms_dir: str | None = None

    # Document conversion microservice (legacy office formats -> PDF)
    conversion_service_url: str | None = None
    conversion_timeout_seconds: float = 120.0

    @model_validator(mode="after")
    def _check_chunk_window(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.provider_retry_jitter_min_ms > self.provider_retry_jitter_max_ms:
            raise ValueError("retry jitter min must not exceed max")
        return self

    def limit_for(self, category: Category) -> int:
        """Maximum number of documents a session may hold in a category."""
        return self.category_limit_overrides.get(category, self.category_document_limit)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
