from __future__ import annotations

from transcriptqa.core.config import TranscriptQAConfig
from transcriptqa.core.exceptions import ConfigurationError
from transcriptqa.core.protocols import CompletionProvider, EmbeddingProvider, VectorStoreProvider
from transcriptqa.core.retry_config import RetryConfig


def create_embedding_provider(
    config: TranscriptQAConfig, retry_config: RetryConfig
) -> EmbeddingProvider:
    provider_name = config.embedding_provider.lower()

    if provider_name == "openai":
        from transcriptqa.embed.openai import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(
            api_key=config.openai_api_key or None,
            model=config.embedding_model,
            retry_config=retry_config,
        )
    raise ConfigurationError(
        f"Unknown embedding provider '{config.embedding_provider}'. "
        "Set TRANSCRIPTQA_EMBEDDING_PROVIDER to 'openai'."
    )


def create_completion_provider(
    config: TranscriptQAConfig, retry_config: RetryConfig
) -> CompletionProvider:
    provider_name = config.completion_provider.lower()

    if provider_name == "anthropic":
        from transcriptqa.generate.anthropic import AnthropicCompletionProvider

        return AnthropicCompletionProvider(
            api_key=config.anthropic_api_key or None,
            model=config.completion_model,
            retry_config=retry_config,
        )
    if provider_name == "openai":
        from transcriptqa.generate.openai import OpenAICompletionProvider

        return OpenAICompletionProvider(
            api_key=config.openai_api_key or None,
            model=config.completion_model,
            retry_config=retry_config,
        )
    raise ConfigurationError(
        f"Unknown completion provider '{config.completion_provider}'. "
        "Set TRANSCRIPTQA_COMPLETION_PROVIDER to 'openai' or 'anthropic'."
    )


def create_vector_store_provider(
    config: TranscriptQAConfig, retry_config: RetryConfig
) -> VectorStoreProvider:
    provider_name = config.vector_store_provider.lower()

    if provider_name == "chromadb":
        from transcriptqa.store.chromadb import ChromaDBVectorStore

        return ChromaDBVectorStore(
            persist_directory=config.chromadb_persist_directory,
            collection_name=config.chromadb_collection_name,
            retry_config=retry_config,
        )
    if provider_name == "memory":
        from transcriptqa.store.memory import InMemoryVectorStore

        return InMemoryVectorStore(
            dimensions=config.embedding_dimensions,
            retry_config=retry_config,
        )
    raise ConfigurationError(
        f"Unknown vector store provider '{config.vector_store_provider}'. "
        "Set TRANSCRIPTQA_VECTOR_STORE_PROVIDER to 'memory' or 'chromadb'."
    )
