"""Similarity search over transcript chunks.

``search`` embeds the query, applies the metadata filter built from the
query's populated fields, and returns one page ordered by chunk start time.
``search_with_intent`` adds metadata extraction, relevance thresholding and
a single broadened fallback pass when nothing survives the first pass.
"""

from __future__ import annotations

from typing import Literal

from transcriptqa.core import (
    EmbeddingProvider,
    EpisodeMetadata,
    MetadataFilter,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SearchServiceResult,
    VectorStoreProvider,
    get_logger,
)
from transcriptqa.core.logging_config import Timer
from transcriptqa.extraction import MetadataExtractor

logger = get_logger(__name__)

RelevanceDirection = Literal["higher_is_better", "lower_is_better"]

# Providers here return similarities; distance-based stores flip this
DEFAULT_RELEVANCE_DIRECTION: RelevanceDirection = "higher_is_better"

DEFAULT_TOP_K_CAP = 100
INTENT_MAX_RESULTS = 5
INTENT_MIN_RELEVANCE = 0.7
FALLBACK_MAX_RESULTS = 3
FALLBACK_MIN_RELEVANCE = 0.8


class RelevanceOrder:
    """Threshold comparison and ranking for one score direction."""

    def __init__(self, direction: RelevanceDirection = DEFAULT_RELEVANCE_DIRECTION) -> None:
        if direction not in ("higher_is_better", "lower_is_better"):
            raise ValueError(f"Unknown relevance direction: {direction!r}")
        self.direction = direction

    @property
    def higher_is_better(self) -> bool:
        return self.direction == "higher_is_better"

    def meets(self, score: float, threshold: float | None) -> bool:
        if threshold is None:
            return True
        return score >= threshold if self.higher_is_better else score <= threshold

    def best_first(self, results: list[SearchResult]) -> list[SearchResult]:
        return sorted(results, key=lambda r: r.relevance_score, reverse=self.higher_is_better)


class RetrievalEngine:
    """Embeds queries and runs filtered similarity search.

    Args:
        embedder: Embedding provider used for query text.
        vector_store: Store holding the embedded chunks.
        extractor: Metadata extractor for intent searches. Without one, intent
            searches run unfiltered.
        top_k_cap: Hard upper bound on results requested from the store.
        relevance_direction: Whether larger scores mean closer matches.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStoreProvider,
        extractor: MetadataExtractor | None = None,
        *,
        top_k_cap: int = DEFAULT_TOP_K_CAP,
        intent_max_results: int = INTENT_MAX_RESULTS,
        intent_min_relevance: float = INTENT_MIN_RELEVANCE,
        fallback_max_results: int = FALLBACK_MAX_RESULTS,
        fallback_min_relevance: float = FALLBACK_MIN_RELEVANCE,
        relevance_direction: RelevanceDirection = DEFAULT_RELEVANCE_DIRECTION,
    ) -> None:
        self._embedder = embedder
        self._vector_store = vector_store
        self._extractor = extractor
        self.top_k_cap = top_k_cap
        self.intent_max_results = intent_max_results
        self.intent_min_relevance = intent_min_relevance
        self.fallback_max_results = fallback_max_results
        self.fallback_min_relevance = fallback_min_relevance
        self.relevance = RelevanceOrder(relevance_direction)

    def _top_k(self, query: SearchQuery) -> int:
        if query.max_results is None:
            return self.top_k_cap
        return min(query.max_results, self.top_k_cap)

    async def search(self, query: SearchQuery) -> SearchServiceResult:
        """Run one filtered similarity search.

        Results are ordered by ascending start time; ``total_results`` is the
        number of stored chunks matching the filter, not the page size.
        """
        metadata_filter = MetadataFilter.from_query(query)
        operation_logger = logger.bind(
            operation="search",
            query=query.query_text[:100],
            filters=len(metadata_filter),
        )

        if not query.query_text.strip():
            operation_logger.warning("search_rejected", reason="empty_query")
            return SearchServiceResult.failed("Query text is required")

        try:
            with Timer(operation_logger, "search_embed"):
                vectors = await self._embedder.embed([query.query_text])
            query_vector = vectors[0]
        except Exception as e:
            operation_logger.error("search_embed_failed", error=str(e), error_type=type(e).__name__)
            return SearchServiceResult.failed("Failed to generate an embedding for the query")

        top_k = self._top_k(query)
        try:
            with Timer(operation_logger, "search_query", top_k=top_k) as timer:
                raw = await self._vector_store.similarity_search(
                    query_vector,
                    filter=metadata_filter or None,
                    top_k=top_k,
                    skip=query.skip,
                )
                timer.complete(results_count=len(raw.results), total_count=raw.total_count)
        except Exception as e:
            operation_logger.error("search_failed", error=str(e), error_type=type(e).__name__)
            return SearchServiceResult.failed("An error occurred during search")

        results = sorted(
            (SearchResult.from_scored(scored) for scored in raw.results),
            key=lambda r: r.start_time,
        )
        return SearchServiceResult.ok(
            SearchResponse(results=results, total_results=raw.total_count)
        )

    def _rank(
        self, results: list[SearchResult], min_relevance: float | None, max_results: int | None
    ) -> list[SearchResult]:
        kept = [
            r
            for r in self.relevance.best_first(results)
            if self.relevance.meets(r.relevance_score, min_relevance)
        ]
        return kept if max_results is None else kept[:max_results]

    async def search_with_intent(self, text: str) -> SearchServiceResult:
        """Search with filters extracted from ``text``, ranked by relevance.

        Results below the minimum relevance are dropped and the rest are
        truncated to the result cap, best first. When that leaves nothing,
        exactly one fallback pass runs without filters, with a smaller cap
        and a stricter threshold; its result is returned even if empty.
        """
        operation_logger = logger.bind(operation="search_with_intent", query=text[:100])

        metadata = EpisodeMetadata()
        if self._extractor is not None:
            metadata = await self._extractor.extract(text)

        query = SearchQuery(
            query_text=text,
            max_results=self.intent_max_results,
            min_relevance_score=self.intent_min_relevance,
            **metadata.model_dump(),
        )
        first = await self.search(query)
        if not first.success or first.response is None:
            operation_logger.warning("intent_search_failed", error=first.error_message)
            return first

        ranked = self._rank(first.response.results, query.min_relevance_score, query.max_results)
        if ranked:
            operation_logger.info("intent_search_completed", results_count=len(ranked))
            return SearchServiceResult.ok(SearchResponse(results=ranked, total_results=len(ranked)))

        operation_logger.info(
            "intent_search_fallback",
            filtered=not metadata.is_empty(),
            first_pass_results=len(first.response.results),
        )
        broad_query = SearchQuery(
            query_text=text,
            max_results=self.fallback_max_results,
            min_relevance_score=self.fallback_min_relevance,
        )
        broad = await self.search(broad_query)
        if not broad.success or broad.response is None:
            return broad

        ranked = self._rank(
            broad.response.results, broad_query.min_relevance_score, broad_query.max_results
        )
        operation_logger.info("intent_search_completed", results_count=len(ranked), fallback=True)
        return SearchServiceResult.ok(SearchResponse(results=ranked, total_results=len(ranked)))
