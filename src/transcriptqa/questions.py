"""Concurrent in-memory cache of generated question sets.

All reads and writes go through one internal lock, so callers on different
threads or tasks never need to coordinate. Stored sets are only mutated by
``mark_shown``; every method hands out copies.

Topic filtering in ``get_by_topic`` and ``get_random`` is an exact,
case-sensitive match against the entries of a set's ``topics`` list. A topic
that only appears as a substring of an entry does not match.

Timestamps are stored in UTC. Naive datetimes, whether on a saved set or
passed as a cutoff, are taken to be UTC.

Random selection order
----------------------
``get_random`` sorts the candidate pool by a composite key:

1. a random float drawn from the injected generator (primary key),
2. ascending ``times_shown``,
3. ascending ``last_shown_at``, never-shown sets first.

The random key dominates, so the selection is a uniform shuffle. The exposure
keys only decide between candidates whose random keys tie. With a seeded
generator the order is fully deterministic.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from transcriptqa.core import GeneratedQuestionSet, get_logger
from transcriptqa.core.id_strategy import new_question_set_id
from transcriptqa.core.models import as_utc, utcnow

logger = get_logger(__name__)

_NEVER_SHOWN = datetime.min.replace(tzinfo=UTC)


class QuestionCache:
    """Thread-safe store of ``GeneratedQuestionSet`` keyed by id.

    Args:
        rng: Random generator used for selection order. Inject a seeded
            ``random.Random`` for reproducible ordering.
        clock: Returns the current UTC time; used for stamps and age windows.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock
        self._sets: dict[str, GeneratedQuestionSet] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sets)

    def __contains__(self, set_id: object) -> bool:
        with self._lock:
            return set_id in self._sets

    def save(self, question_set: GeneratedQuestionSet) -> bool:
        """Insert ``question_set`` unless its id is already stored.

        An id is assigned (and written back onto ``question_set``) when
        absent. Returns False without touching the stored set when the id
        already exists.
        """
        if question_set.id is None:
            question_set.id = new_question_set_id()
        stored = question_set.model_copy(deep=True)
        stored.generated_at = as_utc(stored.generated_at)
        if stored.last_shown_at is not None:
            stored.last_shown_at = as_utc(stored.last_shown_at)
        with self._lock:
            if stored.id in self._sets:
                logger.debug("question_set_exists", question_set_id=stored.id)
                return False
            self._sets[stored.id] = stored
        logger.info(
            "question_set_saved",
            question_set_id=stored.id,
            episode=stored.source_episode_number,
            questions=len(stored.questions),
        )
        return True

    def get(self, set_id: str) -> GeneratedQuestionSet | None:
        with self._lock:
            stored = self._sets.get(set_id)
            return stored.model_copy(deep=True) if stored else None

    def get_random(self, count: int, topic: str | None = None) -> list[GeneratedQuestionSet]:
        """Pick up to ``count`` sets, optionally restricted to ``topic``.

        See the module docstring for the ordering precedence.
        """
        if count <= 0:
            return []
        with self._lock:
            pool = list(self._sets.values())
            if topic and topic.strip():
                pool = [s for s in pool if topic in s.topics]
            keyed = [
                (self._rng.random(), s.times_shown, s.last_shown_at or _NEVER_SHOWN, s)
                for s in pool
            ]
            keyed.sort(key=lambda entry: entry[:3])
            return [entry[3].model_copy(deep=True) for entry in keyed[:count]]

    def mark_shown(self, set_id: str) -> GeneratedQuestionSet | None:
        """Increment ``times_shown`` and stamp ``last_shown_at`` atomically.

        Returns the updated copy, or None (without raising) for unknown ids.
        """
        now = as_utc(self._clock())
        with self._lock:
            stored = self._sets.get(set_id)
            if stored is None:
                return None
            previous = stored.last_shown_at
            stored.last_shown_at = now if previous is None or now >= previous else previous
            stored.times_shown += 1
            return stored.model_copy(deep=True)

    def _sorted_newest_first(self, predicate: Callable[[GeneratedQuestionSet], bool]):
        with self._lock:
            matches = [s.model_copy(deep=True) for s in self._sets.values() if predicate(s)]
        matches.sort(key=lambda s: s.generated_at, reverse=True)
        return matches

    def get_all(self) -> list[GeneratedQuestionSet]:
        return self._sorted_newest_first(lambda s: True)

    def get_by_episode(self, episode_number: str | int) -> list[GeneratedQuestionSet]:
        key = str(episode_number)
        return self._sorted_newest_first(lambda s: s.source_episode_number == key)

    def get_by_topic(self, topic: str) -> list[GeneratedQuestionSet]:
        return self._sorted_newest_first(lambda s: topic in s.topics)

    def get_generated_within(self, days: int) -> list[GeneratedQuestionSet]:
        cutoff = as_utc(self._clock()) - timedelta(days=days)
        return self._sorted_newest_first(lambda s: s.generated_at >= cutoff)

    def delete_older_than(self, cutoff: datetime) -> int:
        """Remove sets generated strictly before ``cutoff``; returns how many.

        A naive ``cutoff`` is taken to be UTC.
        """
        cutoff = as_utc(cutoff)
        with self._lock:
            stale = [set_id for set_id, s in self._sets.items() if s.generated_at < cutoff]
            for set_id in stale:
                del self._sets[set_id]
        if stale:
            logger.info("question_sets_purged", count=len(stale), cutoff=cutoff.isoformat())
        return len(stale)

    def delete_by_id(self, set_id: str) -> bool:
        with self._lock:
            return self._sets.pop(set_id, None) is not None
