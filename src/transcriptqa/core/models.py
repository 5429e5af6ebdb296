"""Pydantic data models for TranscriptQA."""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def split_topics(raw: str | None) -> list[str]:
    """Split a comma-separated topic string into trimmed, non-empty tags."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


# -- Transcript chunks -------------------------------------------------------


class TranscriptChunk(BaseModel):
    """A timestamped span of transcript text with its episode metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    start_time: float
    end_time: float
    episode_number: int
    episode_title: str = ""
    episode_date: date
    chunk_topic: str = ""
    topics: list[str] = Field(default_factory=list)
    embedding: list[float] | None = Field(default=None, repr=False)


class ScoredChunk(BaseModel):
    """A stored chunk paired with the provider's relevance score."""

    chunk: TranscriptChunk
    score: float


class VectorSearchResults(BaseModel):
    """Raw similarity search output of a vector store."""

    results: list[ScoredChunk] = Field(default_factory=list)
    total_count: int = 0


# -- Ingestion ---------------------------------------------------------------


class TranscriptItemMetadata(BaseModel):
    """Metadata object of one item in an uploaded transcript document."""

    date: date
    episode_number: int
    episode_title: str | None = None
    timestamp_start: float
    timestamp_end: float
    chunk_topic: str | None = None
    topics: str | None = None


class TranscriptItem(BaseModel):
    """One chunk descriptor of an uploaded transcript document."""

    text: str
    metadata: TranscriptItemMetadata

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be empty")
        return value


class IngestionOutcome(BaseModel):
    """Outcome of one attempted chunk (or of a whole unparseable file)."""

    file_name: str
    chunk_id: str | None = None
    success: bool
    error_message: str | None = None


class IngestionResult(BaseModel):
    """Ledger returned by the ingestion pipeline."""

    results: list[IngestionOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_processed(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def successful_count(self) -> int:
        return sum(1 for outcome in self.results if outcome.success)

    @property
    def failed(self) -> list[IngestionOutcome]:
        return [outcome for outcome in self.results if not outcome.success]


# -- Search ------------------------------------------------------------------


class SearchQuery(BaseModel):
    """Similarity query plus an optional conjunction of metadata filters."""

    query_text: str
    max_results: int | None = Field(default=None, gt=0)
    min_relevance_score: float | None = None
    skip: int = Field(default=0, ge=0)

    episode_number: int | None = None
    episode_title: str | None = None
    episode_date: date | None = None
    chunk_topic: str | None = None
    topic: str | None = None


class SearchResult(BaseModel):
    """A search hit with its chunk fields denormalized for display."""

    id: str
    text: str
    episode_number: int
    episode_title: str
    episode_date: date
    start_time: float
    end_time: float
    chunk_topic: str
    topics: list[str]
    relevance_score: float

    @classmethod
    def from_scored(cls, scored: ScoredChunk) -> SearchResult:
        chunk = scored.chunk
        return cls(
            id=chunk.id,
            text=chunk.text,
            episode_number=chunk.episode_number,
            episode_title=chunk.episode_title,
            episode_date=chunk.episode_date,
            start_time=chunk.start_time,
            end_time=chunk.end_time,
            chunk_topic=chunk.chunk_topic,
            topics=list(chunk.topics),
            relevance_score=scored.score,
        )


class SearchResponse(BaseModel):
    results: list[SearchResult] = Field(default_factory=list)
    total_results: int = 0


class SearchServiceResult(BaseModel):
    """Structured success/failure envelope returned by every search call."""

    success: bool
    response: SearchResponse | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, response: SearchResponse) -> SearchServiceResult:
        return cls(success=True, response=response)

    @classmethod
    def failed(cls, message: str) -> SearchServiceResult:
        return cls(success=False, error_message=message)


class EpisodeMetadata(BaseModel):
    """Best-effort structured filter extracted from free text."""

    episode_number: int | None = None
    episode_title: str | None = None
    episode_date: date | None = None
    topic: str | None = None
    chunk_topic: str | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


# -- Completion --------------------------------------------------------------


class CompletionParams(BaseModel):
    """Sampling parameters passed to a completion provider."""

    max_tokens: int = 1024
    temperature: float = 0.7
    top_p: float = 1.0


# -- Generated questions -----------------------------------------------------


class GeneratedQuestionSet(BaseModel):
    """A cached bundle of generated questions tied to a source episode."""

    id: str | None = None
    source_episode_number: str
    topics: list[str] = Field(default_factory=list)
    questions: list[str] = Field(min_length=1)
    generated_at: datetime = Field(default_factory=utcnow)
    last_shown_at: datetime | None = None
    times_shown: int = Field(default=0, ge=0)

    @field_validator("generated_at", "last_shown_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else as_utc(value)


class GenerationOutcome(BaseModel):
    """Result of one question generation pass."""

    success: bool
    message: str
    episode_number: int | None = None
    question_set: GeneratedQuestionSet | None = None
