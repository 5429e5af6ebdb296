"""TranscriptQA service: the composition root behind the CLI and any host.

Builds providers from configuration (or takes overrides), owns the single
process-lifetime random generator and the question cache, and wires the
ingestion pipeline, retrieval engine and generation scheduler together.
"""

from __future__ import annotations

import asyncio
import random
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from transcriptqa.core import (
    CompletionParams,
    CompletionProvider,
    CompletionSignal,
    EmbeddingProvider,
    EpisodeCatalogProvider,
    GeneratedQuestionSet,
    GenerationOutcome,
    IngestionResult,
    RetryConfig,
    SearchQuery,
    SearchServiceResult,
    TranscriptQAConfig,
    VectorStoreProvider,
    configure_logging,
    get_logger,
)
from transcriptqa.core.models import utcnow
from transcriptqa.core.provider_factory import (
    create_completion_provider,
    create_embedding_provider,
    create_vector_store_provider,
)
from transcriptqa.extraction import MetadataExtractor
from transcriptqa.generation import QuestionGenerator
from transcriptqa.ingestion import IngestionPipeline
from transcriptqa.questions import QuestionCache
from transcriptqa.retrieval import RetrievalEngine
from transcriptqa.scheduler import GenerationScheduler

logger = get_logger(__name__)


class TranscriptQAService:
    """Transcript search and suggested-question service.

    Call ``start()`` (or use ``async with``) to run startup ingestion of
    ``transcripts_directory`` followed by the generation scheduler. Every
    other method works without starting the service.
    """

    def __init__(
        self,
        config: TranscriptQAConfig | None = None,
        *,
        embedder: EmbeddingProvider | None = None,
        completion: CompletionProvider | None = None,
        vector_store: VectorStoreProvider | None = None,
        clock: Callable[[], datetime] = utcnow,
        generation_slot: threading.Lock | None = None,
    ) -> None:
        """Initialize the service with config and optional provider overrides.

        Args:
            config: Service configuration. Read from the environment if omitted.
            embedder: Custom embedding provider. Defaults based on
                config.embedding_provider.
            completion: Custom completion provider. Defaults based on
                config.completion_provider.
            vector_store: Custom vector store. Defaults based on
                config.vector_store_provider.
            clock: UTC time source shared by the cache and the generator.
            generation_slot: Reentrancy guard for the scheduler; defaults to
                the process-wide slot.
        """
        self._config = config = config or TranscriptQAConfig()

        configure_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_timestamps=config.log_timestamps,
        )
        retry_config = RetryConfig.from_config(config)

        self._embedder = embedder or create_embedding_provider(config, retry_config)
        self._completion = completion or create_completion_provider(config, retry_config)
        self._vector_store = vector_store or create_vector_store_provider(config, retry_config)

        self._rng = random.Random(config.random_seed)
        self._cache = QuestionCache(rng=self._rng, clock=clock)

        self._ingestion = IngestionPipeline(
            self._embedder,
            self._vector_store,
            batch_size=config.ingest_batch_size,
            max_concurrent_batches=config.ingest_max_concurrent_batches,
            supported_file_types=config.supported_file_types,
        )
        extractor = MetadataExtractor(
            self._completion,
            params=CompletionParams(
                max_tokens=config.extraction_max_tokens, temperature=0.0, top_p=1.0
            ),
        )
        self._retrieval = RetrievalEngine(
            self._embedder,
            self._vector_store,
            extractor,
            top_k_cap=config.search_top_k_cap,
            intent_max_results=config.intent_max_results,
            intent_min_relevance=config.intent_min_relevance,
            fallback_max_results=config.fallback_max_results,
            fallback_min_relevance=config.fallback_min_relevance,
            relevance_direction=config.relevance_direction,
        )

        catalog = None
        if config.use_dynamic_episode_pool and isinstance(
            self._vector_store, EpisodeCatalogProvider
        ):
            catalog = self._vector_store
        self._generator = QuestionGenerator(
            self._retrieval,
            self._completion,
            self._cache,
            rng=self._rng,
            episode_pool=config.episode_pool,
            episode_catalog=catalog,
            params=CompletionParams(
                max_tokens=config.generation_max_tokens,
                temperature=config.generation_temperature,
                top_p=config.generation_top_p,
            ),
            clock=clock,
        )

        self.ingestion_complete = CompletionSignal()
        self._scheduler = GenerationScheduler(
            self._generator,
            self.ingestion_complete,
            initial_delay=config.scheduler_initial_delay_seconds,
            interval=config.scheduler_interval_seconds,
            sample_size=config.generation_sample_size,
            slot=generation_slot,
        )
        self._startup_cancel: asyncio.Event | None = None
        self._startup_task: asyncio.Task[Any] | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> TranscriptQAConfig:
        return self._config

    @property
    def cache(self) -> QuestionCache:
        return self._cache

    @property
    def scheduler(self) -> GenerationScheduler:
        return self._scheduler

    @property
    def vector_store(self) -> VectorStoreProvider:
        return self._vector_store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Kick off startup ingestion and the generation scheduler."""
        if self._started:
            raise RuntimeError("service has already been started")
        directory = self._config.transcripts_directory
        if directory is not None:
            self._startup_cancel = asyncio.Event()
            self._startup_task = asyncio.create_task(
                self.ingest_directory(directory, cancel_event=self._startup_cancel),
                name="transcriptqa-startup-ingestion",
            )
        else:
            logger.info("startup_ingestion_skipped", reason="no_transcripts_directory")
            self.ingestion_complete.set()
        self._scheduler.start()
        self._started = True
        logger.info("service_started")

    async def stop(self) -> None:
        """Cancel pending startup batches and stop the scheduler.

        Only the startup ingestion run is cancelled. Later calls to
        ``ingest_document`` and ``ingest_directory`` are unaffected.
        """
        if self._startup_cancel is not None:
            self._startup_cancel.set()
        if self._startup_task is not None:
            await asyncio.gather(self._startup_task, return_exceptions=True)
        await self._scheduler.stop()
        logger.info("service_stopped")

    async def __aenter__(self) -> TranscriptQAService:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_document(
        self, raw: bytes, filename: str, *, cancel_event: asyncio.Event | None = None
    ) -> IngestionResult:
        return await self._ingestion.ingest(raw, filename, cancel_event=cancel_event)

    async def ingest_directory(
        self,
        directory: str | Path | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, IngestionResult]:
        """Ingest a directory and resolve ``ingestion_complete`` when done."""
        target = directory or self._config.transcripts_directory
        if target is None:
            logger.warning("ingest_directory_skipped", reason="no_directory")
            self.ingestion_complete.set()
            return {}
        return await self._ingestion.ingest_directory(
            target, signal=self.ingestion_complete, cancel_event=cancel_event
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: SearchQuery) -> SearchServiceResult:
        return await self._retrieval.search(query)

    async def search_with_intent(self, text: str) -> SearchServiceResult:
        return await self._retrieval.search_with_intent(text)

    # ------------------------------------------------------------------
    # Suggested questions
    # ------------------------------------------------------------------

    async def generate_questions(
        self, sample_size: int | None = None, *, episode_number: int | None = None
    ) -> GenerationOutcome:
        return await self._generator.generate(
            sample_size or self._config.generation_sample_size,
            episode_number=episode_number,
        )

    async def get_random_questions(
        self, count: int = 3, topic: str | None = None
    ) -> list[GeneratedQuestionSet]:
        """Return up to ``count`` question sets and mark each one shown.

        When the cache holds fewer than ``count`` matching sets, one
        generation pass runs first.
        """
        selected = self._cache.get_random(count, topic)
        if len(selected) < count:
            logger.info(
                "question_shortage", requested=count, available=len(selected), topic=topic
            )
            await self._generator.generate(self._config.shortage_sample_size)
            selected = self._cache.get_random(count, topic)

        shown: list[GeneratedQuestionSet] = []
        for question_set in selected:
            if question_set.id is None:
                continue
            updated = self._cache.mark_shown(question_set.id)
            if updated is not None:
                shown.append(updated)
        return shown

    async def save_generated_questions(self, question_set: GeneratedQuestionSet) -> bool:
        return self._cache.save(question_set)

    async def get_all_questions(self) -> list[GeneratedQuestionSet]:
        return self._cache.get_all()

    async def get_questions_by_episode(
        self, episode_number: str | int
    ) -> list[GeneratedQuestionSet]:
        return self._cache.get_by_episode(episode_number)

    async def get_questions_by_topic(self, topic: str) -> list[GeneratedQuestionSet]:
        return self._cache.get_by_topic(topic)

    async def get_recent_questions(self, days: int) -> list[GeneratedQuestionSet]:
        return self._cache.get_generated_within(days)

    async def delete_older_than(self, cutoff: datetime) -> int:
        return self._cache.delete_older_than(cutoff)

    async def delete_by_id(self, set_id: str) -> bool:
        return self._cache.delete_by_id(set_id)
