"""Provider contracts consumed by TranscriptQA."""

from .completion import CompletionProvider
from .embedding import EmbeddingProvider
from .vector_store import EpisodeCatalogProvider, VectorStoreProvider

__all__ = [
    "CompletionProvider",
    "EmbeddingProvider",
    "EpisodeCatalogProvider",
    "VectorStoreProvider",
]
