"""Metadata filter built from the populated fields of a search query.

A filter is a conjunction of clauses. Each present query field adds exactly
one clause, absent fields add none, and an empty filter means unfiltered
search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from transcriptqa.core.models import SearchQuery, TranscriptChunk

FilterOp = Literal["eq", "any_tag_eq"]


@dataclass(frozen=True)
class FilterClause:
    field: str
    op: FilterOp
    value: Any

    def matches(self, chunk: TranscriptChunk) -> bool:
        actual = getattr(chunk, self.field)
        if self.op == "any_tag_eq":
            return self.value in actual
        return actual == self.value


@dataclass(frozen=True)
class MetadataFilter:
    clauses: tuple[FilterClause, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)

    def matches(self, chunk: TranscriptChunk) -> bool:
        return all(clause.matches(chunk) for clause in self.clauses)

    @classmethod
    def from_query(cls, query: SearchQuery) -> MetadataFilter:
        clauses: list[FilterClause] = []
        if query.episode_date is not None:
            clauses.append(FilterClause("episode_date", "eq", _as_date(query.episode_date)))
        if query.episode_number is not None:
            clauses.append(FilterClause("episode_number", "eq", query.episode_number))
        if query.episode_title and query.episode_title.strip():
            clauses.append(FilterClause("episode_title", "eq", query.episode_title))
        if query.chunk_topic and query.chunk_topic.strip():
            clauses.append(FilterClause("chunk_topic", "eq", query.chunk_topic))
        if query.topic and query.topic.strip():
            clauses.append(FilterClause("topics", "any_tag_eq", query.topic))
        return cls(tuple(clauses))


def _as_date(value: date) -> date:
    # datetime is a date subclass; equality against stored dates needs the date part
    return value if type(value) is date else date(value.year, value.month, value.day)
