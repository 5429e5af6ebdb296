"""One question-generation pass.

Pick an episode, sample a few of its chunks through the retrieval engine,
ask the completion provider for short questions, and cache the parsed set.
A pass never raises: every failure is logged and reported in the returned
``GenerationOutcome``.
"""

from __future__ import annotations

import json
import random
from collections.abc import Callable, Sequence
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from transcriptqa.core import (
    CompletionParams,
    CompletionProvider,
    EpisodeCatalogProvider,
    GeneratedQuestionSet,
    GenerationOutcome,
    ParseError,
    SearchQuery,
    SearchResult,
    get_logger,
)
from transcriptqa.core.config import DEFAULT_EPISODE_POOL
from transcriptqa.core.logging_config import Timer
from transcriptqa.core.models import utcnow
from transcriptqa.extraction import strip_code_fences
from transcriptqa.questions import QuestionCache
from transcriptqa.retrieval import RetrievalEngine

logger = get_logger(__name__)

SAMPLE_QUERY_TEXT = "Topic"
DEFAULT_SAMPLE_SIZE = 5

GENERATION_PARAMS = CompletionParams(max_tokens=1024, temperature=0.9, top_p=0.95)

QUESTION_PROMPT = """\
Here is some transcript text from a popular show:
'{transcript}'
I want you to provide 3-5 short questions, each question should be between 3-8 words and \
each question should focus on specific people, places, events or ideas.
Be on the lookout for movie references, art, music, and other pop culture references and \
ask questions about those.
Word the questions in such a way that the question is only answerable from the text itself, \
if the answer to your question cannot be answered by only the text, do not include it in the list.
Most importantly, each question should be interesting and creative enough to engage the reader \
and entice them to click on it.
Please return the questions as a JSON array of strings without any formatting artifacts \
such as backticks."""

_QUESTION_LIST = TypeAdapter(list[str])


def build_prompt(results: Sequence[SearchResult]) -> str:
    transcript = ", ".join(result.text for result in results)
    return QUESTION_PROMPT.format(transcript=transcript)


def parse_questions(reply: str) -> list[str]:
    """Parse a JSON array of question strings out of a model reply.

    Raises:
        ParseError: If there is no array of strings or it holds no question.
    """
    cleaned = strip_code_fences(reply)
    start, end = cleaned.find("["), cleaned.rfind("]")
    if start == -1 or end < start:
        raise ParseError("No JSON array in model output", raw_output=reply[:500])
    try:
        values = _QUESTION_LIST.validate_python(json.loads(cleaned[start : end + 1]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ParseError(f"Model output is not a JSON array of strings: {e}", reply[:500]) from e
    questions = [q.strip() for q in values if q.strip()]
    if not questions:
        raise ParseError("Model returned no questions", raw_output=reply[:500])
    return questions


def collect_topics(results: Sequence[SearchResult]) -> list[str]:
    """Union of chunk topics and topic tags, first-seen order."""
    seen: dict[str, None] = {}
    for result in results:
        for topic in [result.chunk_topic, *result.topics]:
            if topic:
                seen.setdefault(topic, None)
    return list(seen)


class QuestionGenerator:
    """Runs generation passes and writes results into the question cache.

    Args:
        retrieval: Engine used to sample chunks for the chosen episode.
        completion: Provider that writes the questions.
        cache: Destination for generated sets.
        rng: Shared random generator used to choose episodes.
        episode_pool: Fixed candidate episodes.
        episode_catalog: Optional store capability listing indexed episodes;
            when it returns any, it replaces the fixed pool.
        params: Sampling parameters for the completion call.
        clock: Source of ``generated_at`` timestamps.
    """

    def __init__(
        self,
        retrieval: RetrievalEngine,
        completion: CompletionProvider,
        cache: QuestionCache,
        *,
        rng: random.Random | None = None,
        episode_pool: Sequence[int] = DEFAULT_EPISODE_POOL,
        episode_catalog: EpisodeCatalogProvider | None = None,
        params: CompletionParams = GENERATION_PARAMS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._retrieval = retrieval
        self._completion = completion
        self._cache = cache
        self._rng = rng or random.Random()
        self._episode_pool = list(episode_pool)
        self._episode_catalog = episode_catalog
        self._params = params
        self._clock = clock

    async def candidate_episodes(self) -> list[int]:
        if self._episode_catalog is not None:
            try:
                dynamic = await self._episode_catalog.list_episode_numbers()
            except Exception as e:
                logger.warning("episode_catalog_failed", error=str(e))
            else:
                if dynamic:
                    return list(dynamic)
        return list(self._episode_pool)

    async def choose_episode(self) -> int | None:
        candidates = await self.candidate_episodes()
        if not candidates:
            return None
        return self._rng.choice(candidates)

    async def generate(
        self,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        *,
        episode_number: int | None = None,
    ) -> GenerationOutcome:
        """Run one pass; never raises."""
        try:
            return await self._generate(sample_size, episode_number)
        except Exception as e:
            logger.error("generation_failed", error=str(e), error_type=type(e).__name__)
            return GenerationOutcome(
                success=False,
                message="Error generating questions",
                episode_number=episode_number,
            )

    async def _generate(self, sample_size: int, episode_number: int | None) -> GenerationOutcome:
        if episode_number is None:
            episode_number = await self.choose_episode()
        if episode_number is None:
            logger.warning("generation_skipped", reason="no_candidate_episodes")
            return GenerationOutcome(success=False, message="No episodes available")

        operation_logger = logger.bind(operation="generate_questions", episode=episode_number)
        operation_logger.info("episode_selected", sample_size=sample_size)

        search = await self._retrieval.search(
            SearchQuery(
                query_text=SAMPLE_QUERY_TEXT,
                episode_number=episode_number,
                max_results=sample_size,
            )
        )
        if not search.success or search.response is None:
            operation_logger.error("generation_sample_failed", error=search.error_message)
            return GenerationOutcome(
                success=False,
                message="Failed to fetch content for question generation",
                episode_number=episode_number,
            )
        sampled = search.response.results
        if not sampled:
            operation_logger.warning("generation_sample_empty")
            return GenerationOutcome(
                success=False,
                message=f"No transcript content found for episode {episode_number}",
                episode_number=episode_number,
            )

        with Timer(operation_logger, "question_completion", chunks=len(sampled)):
            reply = await self._completion.complete(build_prompt(sampled), self._params)

        try:
            questions = parse_questions(reply)
        except ParseError as e:
            operation_logger.warning("question_parse_failed", error=str(e))
            return GenerationOutcome(
                success=False,
                message="Model output could not be parsed as questions",
                episode_number=episode_number,
            )

        question_set = GeneratedQuestionSet(
            source_episode_number=str(episode_number),
            topics=collect_topics(sampled),
            questions=questions,
            generated_at=self._clock(),
        )
        self._cache.save(question_set)
        operation_logger.info(
            "questions_generated",
            question_set_id=question_set.id,
            questions=len(questions),
        )
        return GenerationOutcome(
            success=True,
            message="Successfully generated questions",
            episode_number=episode_number,
            question_set=question_set.model_copy(deep=True),
        )
