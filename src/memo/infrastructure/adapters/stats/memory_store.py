"""
In-memory Progress Store: process-local adapter.

Implements ProgressStore with dictionaries guarded by one lock. Used for
tests, demos and single-process deployments without a database.
"""

import logging
import threading
from collections.abc import Collection
from datetime import date

from memo.domain.stats.models import DailyStatsRecord, DeckAggregate
from memo.domain.stats.ports import ProgressStore
from memo.domain.validation import (
    require_positive_id,
    require_positive_ids,
    require_present,
    validate_session_counters,
)

logger = logging.getLogger(__name__)


class InMemoryProgressStore(ProgressStore):
    """
    Known-card sets and daily rows held in dictionaries.

    Every mutation takes the lock for its whole duration, so the counter
    upsert and the known-card delta of append_session land together and
    concurrent sessions accumulate instead of overwriting each other.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._daily: dict[int, dict[date, DailyStatsRecord]] = {}
        self._known: dict[int, set[int]] = {}

    async def get_known_card_ids(self, deck_id: int) -> frozenset[int]:
        require_positive_id("deck_id", deck_id)
        with self._lock:
            return frozenset(self._known.get(deck_id, ()))

    async def get_known_card_ids_batch(
        self, deck_ids: Collection[int]
    ) -> dict[int, frozenset[int]]:
        ids = require_positive_ids("deck_ids", deck_ids)
        with self._lock:
            return {deck_id: frozenset(self._known.get(deck_id, ())) for deck_id in ids}

    async def is_card_known(self, deck_id: int, card_id: int) -> bool:
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        with self._lock:
            return card_id in self._known.get(deck_id, ())

    async def set_card_known(self, deck_id: int, card_id: int, known: bool) -> None:
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        with self._lock:
            if known:
                self._known.setdefault(deck_id, set()).add(card_id)
            else:
                self._known.get(deck_id, set()).discard(card_id)

    async def append_session(
        self,
        deck_id: int,
        day: date,
        viewed: int,
        correct: int,
        hard: int,
        duration_ms: int,
        answer_delay_ms: int,
        known_card_ids_delta: Collection[int],
    ) -> None:
        require_positive_id("deck_id", deck_id)
        require_present("day", day)
        validate_session_counters(viewed, correct, hard, duration_ms, answer_delay_ms)
        delta = require_positive_ids("known_card_ids_delta", known_card_ids_delta or ())
        if viewed <= 0:
            logger.debug(f"Ignoring session without viewed cards for deckId={deck_id}")
            return

        with self._lock:
            by_date = self._daily.setdefault(deck_id, {})
            existing = by_date.get(day) or DailyStatsRecord(date=day)
            by_date[day] = DailyStatsRecord(
                date=day,
                sessions=existing.sessions + 1,
                viewed=existing.viewed + viewed,
                correct=existing.correct + correct,
                hard=existing.hard + hard,
                total_duration_ms=existing.total_duration_ms + duration_ms,
                total_answer_delay_ms=existing.total_answer_delay_ms + answer_delay_ms,
            )
            if delta:
                self._known.setdefault(deck_id, set()).update(delta)

    async def reset_deck_progress(self, deck_id: int) -> None:
        require_positive_id("deck_id", deck_id)
        with self._lock:
            self._daily.pop(deck_id, None)
            self._known.pop(deck_id, None)

    async def get_daily_stats(self, deck_id: int) -> list[DailyStatsRecord]:
        require_positive_id("deck_id", deck_id)
        with self._lock:
            rows = list(self._daily.get(deck_id, {}).values())
        return sorted(rows, key=lambda r: r.date)

    async def get_aggregates_for_decks(
        self, deck_ids: Collection[int], today: date
    ) -> dict[int, DeckAggregate]:
        ids = require_positive_ids("deck_ids", deck_ids)
        require_present("today", today)

        result: dict[int, DeckAggregate] = {}
        with self._lock:
            for deck_id in ids:
                rows = list(self._daily.get(deck_id, {}).values())
                todays = [r for r in rows if r.date == today]
                result[deck_id] = DeckAggregate(
                    sessions_all=sum(r.sessions for r in rows),
                    viewed_all=sum(r.viewed for r in rows),
                    correct_all=sum(r.correct for r in rows),
                    hard_all=sum(r.hard for r in rows),
                    sessions_today=sum(r.sessions for r in todays),
                    viewed_today=sum(r.viewed for r in todays),
                    correct_today=sum(r.correct for r in todays),
                    hard_today=sum(r.hard for r in todays),
                )
        return result
