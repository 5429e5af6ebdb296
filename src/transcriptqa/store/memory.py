"""In-memory vector store.

Default store for development and tests. Records are keyed by chunk id, so
upserting an existing id overwrites it. Scores are cosine similarities, where
higher means a closer match.
"""

from __future__ import annotations

import math
import threading

from transcriptqa.core.filters import MetadataFilter
from transcriptqa.core.models import ScoredChunk, TranscriptChunk, VectorSearchResults
from transcriptqa.store._base import VectorStoreMixin


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorStore(VectorStoreMixin):
    """Thread-safe dictionary-backed vector store."""

    _provider_name: str = "memory_vector_store"

    def __init__(self, *, dimensions: int | None = None, retry_config=None) -> None:
        super().__init__(retry_config=retry_config)
        self._dimensions = dimensions
        self._records: dict[str, TranscriptChunk] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def count(self) -> int:
        return len(self)

    async def upsert(self, chunks: list[TranscriptChunk]) -> list[str]:
        for chunk in chunks:
            if chunk.embedding is None:
                raise self._wrap_error(ValueError(f"chunk {chunk.id} has no embedding"), "upsert")
            if self._dimensions is not None and len(chunk.embedding) != self._dimensions:
                raise self._wrap_error(
                    ValueError(
                        f"chunk {chunk.id} has {len(chunk.embedding)} dimensions, "
                        f"expected {self._dimensions}"
                    ),
                    "upsert",
                )
        with self._lock:
            for chunk in chunks:
                self._records[chunk.id] = chunk
        self._logger.debug("documents_upserted", count=len(chunks))
        return [chunk.id for chunk in chunks]

    async def similarity_search(
        self,
        vector: list[float],
        filter: MetadataFilter | None = None,
        top_k: int = 10,
        skip: int = 0,
    ) -> VectorSearchResults:
        with self._lock:
            candidates = list(self._records.values())

        scored: list[ScoredChunk] = []
        for chunk in candidates:
            if chunk.embedding is None:
                continue
            if filter and not filter.matches(chunk):
                continue
            try:
                score = cosine_similarity(vector, chunk.embedding)
            except ValueError as e:
                raise self._wrap_error(e, "similarity_search") from e
            scored.append(ScoredChunk(chunk=chunk, score=score))

        scored.sort(key=lambda item: item.score, reverse=True)
        page = scored[skip : skip + top_k]
        self._logger.debug(
            "query_completed", total_count=len(scored), results_count=len(page), top_k=top_k
        )
        return VectorSearchResults(results=page, total_count=len(scored))

    async def get(self, chunk_id: str) -> TranscriptChunk | None:
        with self._lock:
            return self._records.get(chunk_id)

    async def list_episode_numbers(self) -> list[int]:
        with self._lock:
            return sorted({chunk.episode_number for chunk in self._records.values()})
