from typing import Protocol, runtime_checkable

from transcriptqa.core.filters import MetadataFilter
from transcriptqa.core.models import TranscriptChunk, VectorSearchResults


@runtime_checkable
class VectorStoreProvider(Protocol):
    async def upsert(self, chunks: list[TranscriptChunk]) -> list[str]: ...

    async def similarity_search(
        self,
        vector: list[float],
        filter: MetadataFilter | None = None,
        top_k: int = 10,
        skip: int = 0,
    ) -> VectorSearchResults: ...


@runtime_checkable
class EpisodeCatalogProvider(Protocol):
    async def list_episode_numbers(self) -> list[int]: ...
