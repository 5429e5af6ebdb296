"""Vector store providers."""

from __future__ import annotations

from transcriptqa.store.memory import InMemoryVectorStore


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "ChromaDBVectorStore":
        try:
            from transcriptqa.store.chromadb import ChromaDBVectorStore

            return ChromaDBVectorStore
        except ImportError:
            raise ImportError(
                "ChromaDBVectorStore requires 'chromadb'. "
                "Install with: pip install transcriptqa[chromadb]"
            ) from None
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ChromaDBVectorStore",
    "InMemoryVectorStore",
]
