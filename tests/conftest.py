"""Shared pytest fixtures for the TranscriptQA test suite."""

import hashlib
import json
import random
from datetime import UTC, date, datetime, timedelta

import pytest

from transcriptqa.core.exceptions import ProviderError
from transcriptqa.core.models import CompletionParams, TranscriptChunk
from transcriptqa.store.memory import InMemoryVectorStore

DIMENSIONS = 4

# ============================================================================
# Fake Providers
# ============================================================================


class FakeEmbedder:
    """Deterministic embedder.

    Texts listed in ``vectors`` get that exact vector; anything else gets a
    stable vector derived from its SHA-256 digest.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None) -> None:
        self.vectors = dict(vectors or {})
        self.calls: list[list[str]] = []
        self.fail_on: set[str] = set()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if any(text in self.fail_on for text in texts):
            raise ProviderError("embedding service unavailable", provider="fake_embedding")
        return [self.vectors.get(text) or self.hash_vector(text) for text in texts]

    @staticmethod
    def hash_vector(text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [byte / 255 + 0.01 for byte in digest[:DIMENSIONS]]


class ScriptedCompletion:
    """Completion provider that replays queued replies.

    Queued exceptions are raised instead of returned. An empty queue yields
    an empty reply.
    """

    def __init__(self, replies: list[str | Exception] | None = None) -> None:
        self.replies = list(replies or [])
        self.prompts: list[str] = []
        self.params: list[CompletionParams] = []

    async def complete(self, prompt: str, params: CompletionParams) -> str:
        self.prompts.append(prompt)
        self.params.append(params)
        if not self.replies:
            return ""
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FixedClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_chunk(
    chunk_id: str,
    text: str,
    *,
    episode_number: int,
    start_time: float,
    embedding: list[float],
    episode_title: str = "",
    episode_date: date = date(2021, 3, 4),
    chunk_topic: str = "",
    topics: list[str] | None = None,
) -> TranscriptChunk:
    return TranscriptChunk(
        id=chunk_id,
        text=text,
        start_time=start_time,
        end_time=start_time + 10.0,
        episode_number=episode_number,
        episode_title=episode_title,
        episode_date=episode_date,
        chunk_topic=chunk_topic,
        topics=topics or [],
        embedding=embedding,
    )


def transcript_item(
    text: str,
    *,
    episode_number: int = 510,
    start: float = 0.0,
    topics: str | None = "jazz, music",
) -> dict:
    return {
        "text": text,
        "metadata": {
            "date": "2021-03-04",
            "episode_number": episode_number,
            "episode_title": "Jazz Night",
            "timestamp_start": start,
            "timestamp_end": start + 10.0,
            "chunk_topic": "Music",
            "topics": topics,
        },
    }


def transcript_document(items: list) -> bytes:
    return json.dumps(items).encode("utf-8")


# ============================================================================
# Fixtures
# ============================================================================

JAZZ_VECTOR = [1.0, 0.0, 0.0, 0.0]
ORTHOGONAL_VECTOR = [0.0, 0.0, 1.0, 0.0]


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    """Embedder mapping the query texts used across the suite to fixed vectors."""
    return FakeEmbedder(
        {
            "jazz": JAZZ_VECTOR,
            "Topic": JAZZ_VECTOR,
            "nothing relevant": ORTHOGONAL_VECTOR,
        }
    )


@pytest.fixture
def scripted_completion() -> ScriptedCompletion:
    return ScriptedCompletion()


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def episode_chunks() -> list[TranscriptChunk]:
    """Three chunks of episode 510 and two of episode 201.

    Cosine scores against ``JAZZ_VECTOR``: a=1.0, b≈0.95, c=0.0, d=0.6, e≈0.30.
    """
    return [
        make_chunk(
            "a",
            "Miles Davis changed jazz forever",
            episode_number=510,
            start_time=30.0,
            embedding=[1.0, 0.0, 0.0, 0.0],
            episode_title="Jazz Night",
            chunk_topic="Music",
            topics=["jazz", "music"],
        ),
        make_chunk(
            "b",
            "They argue about Kind of Blue",
            episode_number=510,
            start_time=10.0,
            embedding=[0.9, 0.3, 0.0, 0.0],
            episode_title="Jazz Night",
            chunk_topic="Music",
            topics=["jazz"],
        ),
        make_chunk(
            "c",
            "A long tangent about pizza toppings",
            episode_number=510,
            start_time=20.0,
            embedding=[0.0, 1.0, 0.0, 0.0],
            episode_title="Jazz Night",
            chunk_topic="Food",
            topics=["food"],
        ),
        make_chunk(
            "d",
            "Driving the length of Route 66",
            episode_number=201,
            start_time=5.0,
            embedding=[0.6, 0.8, 0.0, 0.0],
            episode_title="Road Trip",
            episode_date=date(2019, 6, 1),
            chunk_topic="Travel",
            topics=["travel", "cars"],
        ),
        make_chunk(
            "e",
            "Ghost towns of Arizona",
            episode_number=201,
            start_time=15.0,
            embedding=[0.3, 0.95, 0.0, 0.0],
            episode_title="Road Trip",
            episode_date=date(2019, 6, 1),
            chunk_topic="Travel",
            topics=["travel"],
        ),
    ]


@pytest.fixture
async def populated_store(episode_chunks: list[TranscriptChunk]) -> InMemoryVectorStore:
    store = InMemoryVectorStore(dimensions=DIMENSIONS)
    await store.upsert(episode_chunks)
    return store
