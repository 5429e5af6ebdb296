"""Configuration management for TranscriptQA using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EPISODE_POOL: list[int] = [201, 504, 510, 509, 606, 607, 608, 101, 307, 401, 410, 609, 602]


class TranscriptQAConfig(BaseSettings):
    """TranscriptQA configuration with environment variable support.

    All settings use the TRANSCRIPTQA_ env prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIPTQA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- Provider Selection --
    embedding_provider: str = "openai"
    completion_provider: str = "openai"
    vector_store_provider: str = "memory"

    # -- API Keys --
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # -- Models --
    embedding_model: str = "text-embedding-ada-002"
    embedding_dimensions: int = 1536
    completion_model: str = "gpt-4o-mini"

    # -- Vector Store Settings --
    chromadb_persist_directory: str = "./chroma_db"
    chromadb_collection_name: str = "transcripts"

    # -- Ingestion --
    ingest_batch_size: int = 100
    ingest_max_concurrent_batches: int = 4
    transcripts_directory: Path | None = None
    supported_file_types: list[str] = [".json"]

    # -- Retrieval --
    search_top_k_cap: int = 100
    intent_max_results: int = 5
    intent_min_relevance: float = 0.7
    fallback_max_results: int = 3
    fallback_min_relevance: float = 0.8
    relevance_direction: Literal["higher_is_better", "lower_is_better"] = "higher_is_better"

    # -- Metadata Extraction --
    extraction_max_tokens: int = 200

    # -- Question Generation --
    generation_sample_size: int = 5
    shortage_sample_size: int = 3
    generation_max_tokens: int = 1024
    generation_temperature: float = 0.9
    generation_top_p: float = 0.95
    episode_pool: list[int] = Field(default_factory=lambda: list(DEFAULT_EPISODE_POOL))
    use_dynamic_episode_pool: bool = True

    # -- Scheduler --
    scheduler_initial_delay_seconds: float = 300.0
    scheduler_interval_seconds: float = 86400.0

    # -- Randomness --
    random_seed: int | None = None

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "colored"
    log_timestamps: bool = True

    # -- Retry Configuration --
    retry_max_attempts: int = 3
    retry_min_wait_seconds: float = 4.0
    retry_max_wait_seconds: float = 60.0
    retry_exponential_multiplier: float = 1.0

    @field_validator(
        "ingest_batch_size",
        "ingest_max_concurrent_batches",
        "search_top_k_cap",
        "intent_max_results",
        "fallback_max_results",
        "generation_sample_size",
        "shortage_sample_size",
        "embedding_dimensions",
    )
    @classmethod
    def _validate_positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("scheduler_interval_seconds")
    @classmethod
    def _validate_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("scheduler interval must be positive")
        return value

    @field_validator("scheduler_initial_delay_seconds")
    @classmethod
    def _validate_initial_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("scheduler initial delay cannot be negative")
        return value

    @field_validator("intent_min_relevance", "fallback_min_relevance")
    @classmethod
    def _validate_relevance(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("relevance thresholds must be within [0, 1]")
        return value

    @field_validator("supported_file_types")
    @classmethod
    def _normalize_file_types(cls, value: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]
