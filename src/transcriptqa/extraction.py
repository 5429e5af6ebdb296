"""Free-text to structured-filter extraction.

One low-temperature completion call turns a user's question into an
``EpisodeMetadata`` filter. The model's output is untrusted: every field is
re-validated on its own, and any failure (provider error, malformed JSON,
wrong types) yields an empty filter instead of an error.
"""

from __future__ import annotations

import json
import re
from datetime import date
from typing import Any

from pydantic import TypeAdapter, ValidationError

from transcriptqa.core import (
    CompletionParams,
    CompletionProvider,
    EpisodeMetadata,
    ParseError,
    get_logger,
)

logger = get_logger(__name__)

METADATA_EXTRACTION_PROMPT = """\
User query: {user_intent}

Extract related metadata from the user query.
Valid metadata fields are episode number, episode title, episode date, and topic.
Only include fields in the response if they are explicitly mentioned or clearly
implied in the query.

Return valid JSON (not in markdown) with a single top-level object, no backticks
and no additional quotes around the entire object.
For Example:
{{
    "EpisodeNumber": 510,
    "EpisodeTitle": "The Title",
    "EpisodeDate": "2022-01-01",
    "Topic": "The Topic"
}}"""

EXTRACTION_PARAMS = CompletionParams(max_tokens=200, temperature=0.0, top_p=1.0)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)

# Accepted spellings per field; the prompt asks for PascalCase
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "episode_number": ("EpisodeNumber", "episode_number", "episodeNumber"),
    "episode_title": ("EpisodeTitle", "episode_title", "episodeTitle"),
    "episode_date": ("EpisodeDate", "episode_date", "episodeDate"),
    "topic": ("Topic", "topic"),
    "chunk_topic": ("ChunkTopic", "chunk_topic", "chunkTopic"),
}

_INT = TypeAdapter(int)
_DATE = TypeAdapter(date)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse the single JSON object in a model reply.

    Raises:
        ParseError: If no JSON object can be decoded.
    """
    cleaned = strip_code_fences(text)
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise ParseError("No JSON object in model output", raw_output=text[:500])
    candidate = cleaned[start : end + 1]
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        # Prompt-template escaping sometimes leaks doubled braces into the reply
        try:
            value = json.loads(candidate.replace("{{", "{").replace("}}", "}"))
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Invalid JSON in model output: {e}", raw_output=text[:500]
            ) from e
    if not isinstance(value, dict):
        raise ParseError("Model output is not a JSON object", raw_output=text[:500])
    return value


def _lookup(payload: dict[str, Any], field: str) -> Any:
    for key in _FIELD_ALIASES[field]:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _clean_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return _INT.validate_python(value)
    except ValidationError:
        return None


def _clean_str(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def _clean_date(value: Any) -> date | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        # Models sometimes emit a full timestamp; only the calendar date matters
        return _DATE.validate_python(value.strip()[:10])
    except ValidationError:
        return None


def metadata_from_payload(payload: dict[str, Any]) -> EpisodeMetadata:
    """Build metadata from an untrusted payload, dropping invalid fields."""
    return EpisodeMetadata(
        episode_number=_clean_int(_lookup(payload, "episode_number")),
        episode_title=_clean_str(_lookup(payload, "episode_title")),
        episode_date=_clean_date(_lookup(payload, "episode_date")),
        topic=_clean_str(_lookup(payload, "topic")),
        chunk_topic=_clean_str(_lookup(payload, "chunk_topic")),
    )


class MetadataExtractor:
    """Extracts an episode filter from free text with one completion call."""

    def __init__(
        self,
        completion: CompletionProvider,
        *,
        params: CompletionParams = EXTRACTION_PARAMS,
    ) -> None:
        self._completion = completion
        self._params = params

    async def extract(self, free_text: str) -> EpisodeMetadata:
        """Return the best-effort filter for ``free_text``; never raises."""
        operation_logger = logger.bind(operation="extract_metadata", text_length=len(free_text))
        prompt = METADATA_EXTRACTION_PROMPT.format(user_intent=free_text)

        try:
            reply = await self._completion.complete(prompt, self._params)
        except Exception as e:
            operation_logger.warning(
                "metadata_extraction_failed", error=str(e), error_type=type(e).__name__
            )
            return EpisodeMetadata()

        try:
            payload = parse_json_object(reply)
        except ParseError as e:
            operation_logger.warning("metadata_parse_failed", error=str(e))
            return EpisodeMetadata()

        metadata = metadata_from_payload(payload)
        operation_logger.debug(
            "metadata_extracted", **metadata.model_dump(exclude_none=True, mode="json")
        )
        return metadata
