"""ChromaDB vector store provider."""

from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from transcriptqa.core.filters import FilterClause, MetadataFilter
from transcriptqa.core.models import ScoredChunk, TranscriptChunk, VectorSearchResults
from transcriptqa.store._base import VectorStoreMixin

if TYPE_CHECKING:
    from chromadb.api import ClientAPI  # type: ignore
    from chromadb.api.models.Collection import Collection  # type: ignore

# Chroma metadata values are scalars, so each topic tag becomes its own flag key
TOPIC_KEY_PREFIX = "topic::"


def chunk_to_metadata(chunk: TranscriptChunk) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "start_time": chunk.start_time,
        "end_time": chunk.end_time,
        "episode_number": chunk.episode_number,
        "episode_title": chunk.episode_title,
        "episode_date": chunk.episode_date.isoformat(),
        "chunk_topic": chunk.chunk_topic,
        "topics": ",".join(chunk.topics),
    }
    for tag in chunk.topics:
        metadata[f"{TOPIC_KEY_PREFIX}{tag}"] = True
    return metadata


def metadata_to_chunk(chunk_id: str, document: str, metadata: dict[str, Any]) -> TranscriptChunk:
    topics = metadata.get("topics") or ""
    return TranscriptChunk(
        id=chunk_id,
        text=document,
        start_time=float(metadata.get("start_time", 0.0)),
        end_time=float(metadata.get("end_time", 0.0)),
        episode_number=int(metadata.get("episode_number", 0)),
        episode_title=metadata.get("episode_title", ""),
        episode_date=date.fromisoformat(metadata["episode_date"]),
        chunk_topic=metadata.get("chunk_topic", ""),
        topics=[tag for tag in topics.split(",") if tag],
    )


def _clause_to_where(clause: FilterClause) -> dict[str, Any]:
    if clause.op == "any_tag_eq":
        return {f"{TOPIC_KEY_PREFIX}{clause.value}": {"$eq": True}}
    value = clause.value.isoformat() if isinstance(clause.value, date) else clause.value
    return {clause.field: {"$eq": value}}


def filter_to_where(filter: MetadataFilter | None) -> dict[str, Any] | None:
    if not filter:
        return None
    parts = [_clause_to_where(clause) for clause in filter.clauses]
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


class ChromaDBVectorStore(VectorStoreMixin):
    """ChromaDB-based vector store using cosine distance.

    Scores are reported as ``1 - distance`` so that higher means closer.
    """

    _provider_name: str = "chromadb_vector_store"

    def __init__(
        self,
        *,
        persist_directory: str | Path,
        collection_name: str = "transcripts",
        retry_config: Any | None = None,
    ) -> None:
        super().__init__(retry_config=retry_config)
        self._persist_directory = Path(persist_directory)
        self._collection_name = collection_name
        self._client: ClientAPI | None = None
        self._collection: Collection | None = None
        self._logger = self._logger.bind(
            collection_name=collection_name,
            persist_directory=str(persist_directory),
        )

    def _ensure_initialized(self) -> Collection:
        """Lazy initialization of ChromaDB client and collection."""
        if self._collection is None:
            import chromadb  # type: ignore

            self._logger.debug("initializing_chromadb")
            client: ClientAPI = chromadb.PersistentClient(path=str(self._persist_directory))
            self._client = client
            self._collection = client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )
            self._logger.info("chromadb_initialized")
        return self._collection

    async def upsert(self, chunks: list[TranscriptChunk]) -> list[str]:
        operation_logger = self._logger.bind(operation="upsert", documents_count=len(chunks))
        ids = [chunk.id for chunk in chunks]

        retry_decorator = self._get_retry_decorator()

        @retry_decorator
        def _upsert_sync() -> None:
            collection = self._ensure_initialized()
            collection.upsert(
                ids=ids,
                embeddings=cast(Any, [chunk.embedding for chunk in chunks]),
                metadatas=cast(Any, [chunk_to_metadata(chunk) for chunk in chunks]),
                documents=[chunk.text for chunk in chunks],
            )

        try:
            await asyncio.to_thread(_upsert_sync)
        except Exception as e:
            raise self._wrap_error(e, "upsert") from e
        operation_logger.info("documents_upserted")
        return ids

    async def similarity_search(
        self,
        vector: list[float],
        filter: MetadataFilter | None = None,
        top_k: int = 10,
        skip: int = 0,
    ) -> VectorSearchResults:
        operation_logger = self._logger.bind(operation="similarity_search", top_k=top_k, skip=skip)
        where = filter_to_where(filter)

        retry_decorator = self._get_retry_decorator()

        @retry_decorator
        def _query_sync() -> VectorSearchResults:
            collection = self._ensure_initialized()
            matching = collection.get(where=cast(Any, where), include=[])
            total = len(matching.get("ids") or [])
            if total == 0:
                return VectorSearchResults(results=[], total_count=0)
            results = collection.query(
                query_embeddings=[vector],
                n_results=min(skip + top_k, total),
                where=cast(Any, where),
                include=["metadatas", "documents", "distances"],
            )
            scored = self._format_results(results)[skip:]
            return VectorSearchResults(results=scored, total_count=total)

        try:
            search_results = await asyncio.to_thread(_query_sync)
        except Exception as e:
            raise self._wrap_error(e, "similarity_search") from e
        operation_logger.info("query_completed", results_count=len(search_results.results))
        return search_results

    async def list_episode_numbers(self) -> list[int]:
        def _list_sync() -> list[int]:
            collection = self._ensure_initialized()
            records = collection.get(include=["metadatas"])
            metadatas = records.get("metadatas") or []
            return sorted({int(m["episode_number"]) for m in metadatas if m})

        try:
            return await asyncio.to_thread(_list_sync)
        except Exception as e:
            raise self._wrap_error(e, "list_episode_numbers") from e

    def _format_results(self, results: Any) -> list[ScoredChunk]:
        output: list[ScoredChunk] = []
        if results["ids"] and results["ids"][0]:
            for i, chunk_id in enumerate(results["ids"][0]):
                metadata = results["metadatas"][0][i] if results["metadatas"] else {}
                document = results["documents"][0][i] if results["documents"] else ""
                distance = results["distances"][0][i] if results["distances"] else 1.0
                output.append(
                    ScoredChunk(
                        chunk=metadata_to_chunk(chunk_id, document, metadata),
                        score=1.0 - float(distance),
                    )
                )
        return output
