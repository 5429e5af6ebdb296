"""Tests for metadata filters built from search queries."""

from datetime import date

from transcriptqa.core.filters import FilterClause, MetadataFilter
from transcriptqa.core.models import SearchQuery


class TestMetadataFilterFromQuery:
    def test_no_fields_means_no_clauses(self):
        metadata_filter = MetadataFilter.from_query(SearchQuery(query_text="q"))
        assert not metadata_filter
        assert len(metadata_filter) == 0

    def test_one_clause_per_present_field(self):
        metadata_filter = MetadataFilter.from_query(
            SearchQuery(
                query_text="q",
                episode_number=510,
                episode_title="Jazz Night",
                episode_date=date(2021, 3, 4),
                chunk_topic="Music",
                topic="jazz",
            )
        )
        assert len(metadata_filter) == 5
        assert FilterClause("topics", "any_tag_eq", "jazz") in metadata_filter.clauses
        assert FilterClause("episode_number", "eq", 510) in metadata_filter.clauses

    def test_blank_strings_add_no_clause(self):
        metadata_filter = MetadataFilter.from_query(
            SearchQuery(query_text="q", episode_title="  ", topic="")
        )
        assert not metadata_filter


class TestMetadataFilterMatches:
    def test_conjunction(self, episode_chunks):
        metadata_filter = MetadataFilter.from_query(
            SearchQuery(query_text="q", episode_number=510, topic="jazz")
        )
        matching = [chunk.id for chunk in episode_chunks if metadata_filter.matches(chunk)]
        assert matching == ["a", "b"]

    def test_topic_is_exact_tag_membership(self, episode_chunks):
        metadata_filter = MetadataFilter.from_query(SearchQuery(query_text="q", topic="jaz"))
        assert not any(metadata_filter.matches(chunk) for chunk in episode_chunks)

    def test_empty_filter_matches_everything(self, episode_chunks):
        assert all(MetadataFilter().matches(chunk) for chunk in episode_chunks)
