"""Tests for concrete providers and the provider factory."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from transcriptqa.core.config import TranscriptQAConfig
from transcriptqa.core.exceptions import ConfigurationError, ProviderError
from transcriptqa.core.models import CompletionParams
from transcriptqa.core.provider_factory import (
    create_completion_provider,
    create_embedding_provider,
    create_vector_store_provider,
)
from transcriptqa.core.retry_config import RETRY_CONFIG_NONE, RetryConfig
from transcriptqa.embed.openai import OpenAIEmbeddingProvider
from transcriptqa.generate.openai import OpenAICompletionProvider
from transcriptqa.store.memory import InMemoryVectorStore

PARAMS = CompletionParams(max_tokens=50, temperature=0.9, top_p=0.95)


def _config(**overrides) -> TranscriptQAConfig:
    return TranscriptQAConfig(_env_file=None, openai_api_key="sk-test", **overrides)


# ============================================================================
# Factory
# ============================================================================


class TestProviderFactory:
    def test_default_providers(self):
        config = _config()
        retry = RetryConfig()
        assert isinstance(create_embedding_provider(config, retry), OpenAIEmbeddingProvider)
        assert isinstance(create_completion_provider(config, retry), OpenAICompletionProvider)
        store = create_vector_store_provider(config, retry)
        assert isinstance(store, InMemoryVectorStore)

    def test_models_come_from_config(self):
        config = _config(embedding_model="text-embedding-3-small", completion_model="gpt-4o")
        retry = RetryConfig()
        assert create_embedding_provider(config, retry).model == "text-embedding-3-small"
        assert create_completion_provider(config, retry).model == "gpt-4o"

    def test_provider_names_are_case_insensitive(self):
        config = _config(vector_store_provider="MEMORY")
        assert isinstance(create_vector_store_provider(config, RetryConfig()), InMemoryVectorStore)

    @pytest.mark.parametrize(
        ("factory", "field"),
        [
            (create_embedding_provider, "embedding_provider"),
            (create_completion_provider, "completion_provider"),
            (create_vector_store_provider, "vector_store_provider"),
        ],
    )
    def test_unknown_provider(self, factory, field):
        with pytest.raises(ConfigurationError, match="Unknown"):
            factory(_config(**{field: "nonexistent"}), RetryConfig())

    def test_chromadb_store(self, tmp_path):
        from transcriptqa.store.chromadb import ChromaDBVectorStore

        config = _config(
            vector_store_provider="chromadb", chromadb_persist_directory=str(tmp_path)
        )
        assert isinstance(create_vector_store_provider(config, RetryConfig()), ChromaDBVectorStore)

    def test_anthropic_completion(self):
        pytest.importorskip("anthropic")
        from transcriptqa.generate.anthropic import AnthropicCompletionProvider

        config = _config(
            completion_provider="anthropic",
            anthropic_api_key="sk-ant-test",
            completion_model="claude-3-5-haiku-latest",
        )
        provider = create_completion_provider(config, RetryConfig())
        assert isinstance(provider, AnthropicCompletionProvider)
        assert provider.model == "claude-3-5-haiku-latest"


# ============================================================================
# OpenAI embeddings
# ============================================================================


def _embedding_client(vectors: list[list[float]]) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(embedding=v) for v in vectors])
    )
    return client


class TestOpenAIEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_one_call_per_batch(self):
        client = _embedding_client([[0.1, 0.2], [0.3, 0.4]])
        provider = OpenAIEmbeddingProvider(client=client, model="text-embedding-ada-002")

        vectors = await provider.embed(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-ada-002", input=["a", "b"]
        )

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=ValueError("bad key"))
        provider = OpenAIEmbeddingProvider(client=client, retry_config=RETRY_CONFIG_NONE)

        with pytest.raises(ProviderError) as exc_info:
            await provider.embed(["a"])

        assert exc_info.value.provider == "openai_embedding"
        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_retryable_errors_are_retried(self):
        client = _embedding_client([[1.0]])
        success = client.embeddings.create.return_value
        client.embeddings.create.side_effect = [ConnectionError("reset"), success]
        retry = RetryConfig(
            max_attempts=2, min_wait_seconds=0, max_wait_seconds=0, exponential_multiplier=0
        )
        provider = OpenAIEmbeddingProvider(client=client, retry_config=retry)

        assert await provider.embed(["a"]) == [[1.0]]
        assert client.embeddings.create.await_count == 2


# ============================================================================
# Completion providers
# ============================================================================


class TestOpenAICompletionProvider:
    @pytest.mark.asyncio
    async def test_sends_sampling_parameters(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content='["Q?"]'))]
            )
        )
        provider = OpenAICompletionProvider(client=client, model="gpt-4o-mini")

        assert await provider.complete("prompt", PARAMS) == '["Q?"]'

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.9
        assert kwargs["top_p"] == 0.95
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_empty_content(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content=None))]
            )
        )
        provider = OpenAICompletionProvider(client=client)
        assert await provider.complete("prompt", PARAMS) == ""

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))
        provider = OpenAICompletionProvider(client=client, retry_config=RETRY_CONFIG_NONE)

        with pytest.raises(ProviderError, match="openai_completion complete failed"):
            await provider.complete("prompt", PARAMS)

    def test_model_setter(self):
        provider = OpenAICompletionProvider(client=MagicMock())
        provider.model = "gpt-4o"
        assert provider.model == "gpt-4o"


class TestAnthropicCompletionProvider:
    @pytest.fixture
    def provider(self):
        pytest.importorskip("anthropic")
        from transcriptqa.generate.anthropic import AnthropicCompletionProvider

        provider = AnthropicCompletionProvider(api_key="sk-ant-test")
        provider.client = MagicMock()
        provider.client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(text="reply")])
        )
        return provider

    @pytest.mark.asyncio
    async def test_sends_top_p_below_one(self, provider):
        assert await provider.complete("prompt", PARAMS) == "reply"
        kwargs = provider.client.messages.create.await_args.kwargs
        assert kwargs["top_p"] == 0.95
        assert kwargs["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_omits_default_top_p(self, provider):
        await provider.complete("prompt", CompletionParams(temperature=0.0, top_p=1.0))
        assert "top_p" not in provider.client.messages.create.await_args.kwargs
