"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CHUNK_STRATEGIES = ("semantic", "fixed")
DISTANCE_METRICS = ("cosine", "l2", "ip")


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file.

    Every component receives a ``Settings`` instance at construction time,
    so tests (or a second concurrent run) can build their own.
    """

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "scu_bulletins"
    distance_metric: str = Field(default="cosine", description="Chroma hnsw:space (cosine | l2 | ip)")

    # Embedding service
    embedding_base_url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the Ollama-compatible embedding service",
    )
    embedding_path: str = "/api/embeddings"
    embedding_model: str = "nomic-embed-text:latest"
    embedding_max_chars: int = Field(default=2000, gt=0)
    embedding_timeout: float = Field(default=60.0, gt=0)

    # Chunking
    chunk_strategy: str = "semantic"
    chunk_size: int = Field(default=500, gt=0, description="Stride for the fixed strategy")
    min_chunk_size: int = Field(default=100, gt=0)
    max_chunk_size: int = Field(default=2000, gt=0)
    min_gap: int = Field(default=50, ge=0, description="Minimum characters between semantic split points")

    # Ingestion
    source_dir: str = "public/bulletin"
    source_glob: str = "*.txt"
    concurrency: int = Field(default=3, ge=1)
    delay_seconds: float = Field(default=0.15, ge=0)
    run_timeout: float | None = Field(
        default=None,
        description="Optional whole-run deadline in seconds; caps every network call",
    )

    # Search
    search_top_k: int = Field(default=5, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_RAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> Settings:
        if self.chunk_strategy not in CHUNK_STRATEGIES:
            raise ValueError(
                f"chunk_strategy must be one of {CHUNK_STRATEGIES}, got {self.chunk_strategy!r}"
            )
        if self.distance_metric not in DISTANCE_METRICS:
            raise ValueError(
                f"distance_metric must be one of {DISTANCE_METRICS}, got {self.distance_metric!r}"
            )
        if self.min_chunk_size * 2 > self.max_chunk_size:
            raise ValueError(
                f"min_chunk_size ({self.min_chunk_size}) must be at most half of "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        return self

    @property
    def embedding_url(self) -> str:
        return self.embedding_base_url.rstrip("/") + "/" + self.embedding_path.lstrip("/")


# Singleton for entry points (CLI, server). Library code takes a Settings argument.
settings = Settings()
