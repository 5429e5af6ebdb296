"""Protocol conformance tests for TranscriptQA providers.

Any object with the right async methods satisfies a provider protocol; the
concrete providers and the test fakes are checked against the same contracts.
"""

from unittest.mock import MagicMock

import pytest

from conftest import FakeEmbedder, ScriptedCompletion
from transcriptqa.core.protocols import (
    CompletionProvider,
    EmbeddingProvider,
    EpisodeCatalogProvider,
    VectorStoreProvider,
)
from transcriptqa.embed.openai import OpenAIEmbeddingProvider
from transcriptqa.generate.openai import OpenAICompletionProvider
from transcriptqa.store.chromadb import ChromaDBVectorStore
from transcriptqa.store.memory import InMemoryVectorStore


@pytest.mark.parametrize(
    "protocol",
    [CompletionProvider, EmbeddingProvider, EpisodeCatalogProvider, VectorStoreProvider],
)
def test_protocol_is_runtime_checkable(protocol):
    assert getattr(protocol, "_is_runtime_protocol", False) is True


class TestEmbeddingProviderConformance:
    def test_concrete_provider(self):
        assert isinstance(OpenAIEmbeddingProvider(client=MagicMock()), EmbeddingProvider)

    def test_fake(self):
        assert isinstance(FakeEmbedder(), EmbeddingProvider)

    def test_non_compliant(self):
        class NoEmbed:
            async def encode(self, texts):
                return []

        assert not isinstance(NoEmbed(), EmbeddingProvider)


class TestCompletionProviderConformance:
    def test_concrete_provider(self):
        assert isinstance(OpenAICompletionProvider(client=MagicMock()), CompletionProvider)

    def test_fake(self):
        assert isinstance(ScriptedCompletion(), CompletionProvider)


class TestVectorStoreConformance:
    def test_memory_store(self):
        store = InMemoryVectorStore()
        assert isinstance(store, VectorStoreProvider)
        assert isinstance(store, EpisodeCatalogProvider)

    def test_chromadb_store(self, tmp_path):
        store = ChromaDBVectorStore(persist_directory=tmp_path)
        assert isinstance(store, VectorStoreProvider)
        assert isinstance(store, EpisodeCatalogProvider)

    def test_store_without_catalog(self):
        class PlainStore:
            async def upsert(self, chunks):
                return []

            async def similarity_search(self, vector, filter=None, top_k=10, skip=0):
                return None

        assert isinstance(PlainStore(), VectorStoreProvider)
        assert not isinstance(PlainStore(), EpisodeCatalogProvider)
