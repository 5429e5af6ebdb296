"""Tests for the ChromaDB store against a mocked collection."""

from datetime import date

import pytest

from transcriptqa.core.exceptions import ProviderError
from transcriptqa.core.filters import MetadataFilter
from transcriptqa.core.models import SearchQuery
from transcriptqa.core.retry_config import RETRY_CONFIG_NONE
from transcriptqa.store.chromadb import (
    TOPIC_KEY_PREFIX,
    ChromaDBVectorStore,
    chunk_to_metadata,
    filter_to_where,
    metadata_to_chunk,
)


class TestMetadataTranslation:
    def test_topic_tags_become_flag_keys(self, episode_chunks):
        metadata = chunk_to_metadata(episode_chunks[0])
        assert metadata[f"{TOPIC_KEY_PREFIX}jazz"] is True
        assert metadata[f"{TOPIC_KEY_PREFIX}music"] is True
        assert metadata["episode_date"] == "2021-03-04"
        assert all(not isinstance(v, list) for v in metadata.values())

    def test_metadata_round_trip_keeps_fields(self, episode_chunks):
        original = episode_chunks[3]
        restored = metadata_to_chunk(original.id, original.text, chunk_to_metadata(original))
        assert restored == original.model_copy(update={"embedding": None})


class TestFilterToWhere:
    def test_no_filter(self):
        assert filter_to_where(None) is None
        assert filter_to_where(MetadataFilter()) is None

    def test_single_clause(self):
        metadata_filter = MetadataFilter.from_query(SearchQuery(query_text="q", episode_number=510))
        assert filter_to_where(metadata_filter) == {"episode_number": {"$eq": 510}}

    def test_multiple_clauses_use_and(self):
        metadata_filter = MetadataFilter.from_query(
            SearchQuery(query_text="q", episode_date=date(2021, 3, 4), topic="jazz")
        )
        assert filter_to_where(metadata_filter) == {
            "$and": [
                {"episode_date": {"$eq": "2021-03-04"}},
                {f"{TOPIC_KEY_PREFIX}jazz": {"$eq": True}},
            ]
        }


class TestChromaDBVectorStoreInit:
    def test_client_is_created_lazily(self, tmp_path):
        store = ChromaDBVectorStore(persist_directory=tmp_path / "chroma")
        assert store._collection is None
        assert not (tmp_path / "chroma").exists()


@pytest.fixture
def collection(mocker):
    return mocker.MagicMock()


@pytest.fixture
def chroma_store(tmp_path, collection) -> ChromaDBVectorStore:
    store = ChromaDBVectorStore(
        persist_directory=tmp_path / "chroma", retry_config=RETRY_CONFIG_NONE
    )
    store._collection = collection
    return store


def _query_reply(chunks, distances):
    return {
        "ids": [[chunk.id for chunk in chunks]],
        "documents": [[chunk.text for chunk in chunks]],
        "metadatas": [[chunk_to_metadata(chunk) for chunk in chunks]],
        "distances": [distances],
    }


class TestChromaDBVectorStoreOperations:
    @pytest.mark.asyncio
    async def test_upsert_sends_flattened_records(self, chroma_store, collection, episode_chunks):
        ids = await chroma_store.upsert(episode_chunks[:2])

        assert ids == ["a", "b"]
        kwargs = collection.upsert.call_args.kwargs
        assert kwargs["ids"] == ["a", "b"]
        assert kwargs["documents"] == [episode_chunks[0].text, episode_chunks[1].text]
        assert kwargs["embeddings"] == [episode_chunks[0].embedding, episode_chunks[1].embedding]
        assert kwargs["metadatas"][0] == chunk_to_metadata(episode_chunks[0])

    @pytest.mark.asyncio
    async def test_upsert_failure_is_wrapped(self, chroma_store, collection, episode_chunks):
        collection.upsert.side_effect = RuntimeError("disk full")

        with pytest.raises(ProviderError, match="disk full"):
            await chroma_store.upsert(episode_chunks[:1])

    @pytest.mark.asyncio
    async def test_similarity_search_scores_and_pages(
        self, chroma_store, collection, episode_chunks
    ):
        hits = episode_chunks[:3]
        collection.get.return_value = {"ids": ["a", "b", "c", "d"]}
        collection.query.return_value = _query_reply(hits, [0.0, 0.25, 0.75])
        metadata_filter = MetadataFilter.from_query(SearchQuery(query_text="q", episode_number=510))

        results = await chroma_store.similarity_search(
            [1.0, 0.0, 0.0, 0.0], filter=metadata_filter, top_k=2, skip=1
        )

        assert results.total_count == 4
        assert [r.chunk.id for r in results.results] == ["b", "c"]
        assert [r.score for r in results.results] == pytest.approx([0.75, 0.25])
        assert results.results[0].chunk.topics == ["jazz"]
        query_kwargs = collection.query.call_args.kwargs
        assert query_kwargs["n_results"] == 3
        assert query_kwargs["where"] == {"episode_number": {"$eq": 510}}
        assert collection.get.call_args.kwargs["where"] == {"episode_number": {"$eq": 510}}

    @pytest.mark.asyncio
    async def test_similarity_search_with_no_matches_skips_query(self, chroma_store, collection):
        collection.get.return_value = {"ids": []}

        results = await chroma_store.similarity_search([1.0, 0.0, 0.0, 0.0])

        assert results.results == []
        assert results.total_count == 0
        collection.query.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_episode_numbers(self, chroma_store, collection):
        collection.get.return_value = {
            "metadatas": [{"episode_number": 510}, {"episode_number": 201}, {"episode_number": 510}]
        }

        assert await chroma_store.list_episode_numbers() == [201, 510]
        assert collection.get.call_args.kwargs == {"include": ["metadatas"]}
