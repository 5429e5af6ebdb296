"""TranscriptQA package.

Semantic search and suggested questions over podcast transcripts.

This package provides composable components for:
- Ingesting transcript documents (validate, batch, embed, upsert)
- Searching indexed chunks with metadata filters and intent extraction
- Generating, caching and serving suggested questions

Usage:
    from transcriptqa import TranscriptQAConfig, TranscriptQAService
    service = TranscriptQAService(TranscriptQAConfig())
    await service.ingest_document(raw_bytes, "episode-510.json")
    result = await service.search_with_intent("what did they say about jazz in episode 510")

    # Modular imports
    from transcriptqa.ingestion import IngestionPipeline
    from transcriptqa.retrieval import RetrievalEngine
    from transcriptqa.store import InMemoryVectorStore
"""

from __future__ import annotations

from transcriptqa.core import (
    GeneratedQuestionSet,
    IngestionResult,
    RetryConfig,
    SearchQuery,
    SearchServiceResult,
    TranscriptQAConfig,
    configure_logging,
    get_logger,
)
from transcriptqa.service import TranscriptQAService

__version__ = "0.1.0"

__all__ = [
    "GeneratedQuestionSet",
    "IngestionResult",
    "RetryConfig",
    "SearchQuery",
    "SearchServiceResult",
    "TranscriptQAConfig",
    "TranscriptQAService",
    "__version__",
    "configure_logging",
    "get_logger",
]
