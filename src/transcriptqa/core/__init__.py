"""Core TranscriptQA components.

Configuration, protocols, models, exceptions and logging shared by every
component.
"""

from __future__ import annotations

from transcriptqa.core.config import TranscriptQAConfig
from transcriptqa.core.exceptions import (
    ConfigurationError,
    InvalidInputError,
    ParseError,
    ProviderError,
    TranscriptQAError,
)
from transcriptqa.core.filters import FilterClause, MetadataFilter
from transcriptqa.core.logging_config import configure_logging, get_logger
from transcriptqa.core.models import (
    CompletionParams,
    EpisodeMetadata,
    GeneratedQuestionSet,
    GenerationOutcome,
    IngestionOutcome,
    IngestionResult,
    ScoredChunk,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SearchServiceResult,
    TranscriptChunk,
    VectorSearchResults,
)
from transcriptqa.core.protocols import (
    CompletionProvider,
    EmbeddingProvider,
    EpisodeCatalogProvider,
    VectorStoreProvider,
)
from transcriptqa.core.retry_config import RetryConfig, create_retry_decorator
from transcriptqa.core.signals import CompletionSignal

__all__ = [
    "CompletionParams",
    "CompletionProvider",
    "CompletionSignal",
    "ConfigurationError",
    "EmbeddingProvider",
    "EpisodeCatalogProvider",
    "EpisodeMetadata",
    "FilterClause",
    "GeneratedQuestionSet",
    "GenerationOutcome",
    "IngestionOutcome",
    "IngestionResult",
    "InvalidInputError",
    "MetadataFilter",
    "ParseError",
    "ProviderError",
    "RetryConfig",
    "ScoredChunk",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "SearchServiceResult",
    "TranscriptChunk",
    "TranscriptQAConfig",
    "TranscriptQAError",
    "VectorSearchResults",
    "VectorStoreProvider",
    "configure_logging",
    "create_retry_decorator",
    "get_logger",
]
