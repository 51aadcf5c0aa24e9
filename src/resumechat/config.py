"""Runtime configuration for the ResumeChat services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="resumechat_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"

    chroma_persist_dir: Path = Path("./.chroma")
    chroma_collection: str = "resumechat"
    chroma_host: str | None = None
    chroma_port: int | None = None
    chroma_ssl: bool = False
    # In-memory index, used by tests and throwaway demos
    chroma_ephemeral: bool = False

    # The same model must serve ingestion and queries
    embedding_model: str = "BAAI/bge-small-en-v1.5"
    embedding_dim: int = 384
    use_model_embeddings: bool = False
    embedding_batch_size: int = 32

    generator_model: str = "Qwen/Qwen2.5-1.8B-Instruct"
    generator_max_new_tokens: int = 512
    generator_temperature: float = 0.5
    generation_timeout_seconds: float | None = 120.0
    # Threads per pipeline step for timed generation calls
    generation_max_workers: int = 8
    use_model_generator: bool = False

    # Characters, not tokens
    chunk_size: int = 1000
    chunk_overlap: int = 100
    ingestion_max_concurrency: int = 5

    retrieval_top_k: int = 4

    # None keeps namespaces forever
    namespace_ttl_hours: float | None = None

    # Upload safety
    allowed_extensions: tuple[str, ...] | str = (".pdf", ".docx", ".txt", ".md")
    max_upload_size_mb: int = 10

    # CORS
    cors_allow_origins: tuple[str, ...] = ()
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    @model_validator(mode="after")
    def _check_chunking(self) -> "Settings":
        if self.chunk_overlap < 0:
            raise ValueError("chunk_overlap must be >= 0")
        if self.chunk_size <= self.chunk_overlap:
            raise ValueError("chunk_size must be greater than chunk_overlap")
        if self.ingestion_max_concurrency < 1:
            raise ValueError("ingestion_max_concurrency must be >= 1")
        if self.generation_max_workers < 1:
            raise ValueError("generation_max_workers must be >= 1")
        return self

    @property
    def allowed_extensions_tuple(self) -> tuple[str, ...]:
        value = self.allowed_extensions
        if isinstance(value, tuple):
            return value
        if isinstance(value, str):
            parts = [p.strip().lower() for p in value.split(",") if p.strip()]
            return tuple(parts) if parts else (".pdf",)
        return (".pdf",)


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
