"""
Stats Aggregator: the single write path from a finished practice run to the
progress store.
"""

import logging
from collections.abc import Collection

from pydantic import ValidationError

from memo.application.cache.invalidation import CacheInvalidator
from memo.domain.errors import InvalidArgumentError
from memo.domain.interfaces import Clock
from memo.domain.stats.models import SessionResult
from memo.domain.stats.ports import ProgressStore

logger = logging.getLogger(__name__)


class StatsAggregator:
    """
    Turns a SessionResult into exactly one ProgressStore.append_session call
    dated "today" by the injected clock, then invalidates the caches that the
    write made stale.

    Holds no state of its own.
    """

    def __init__(
        self,
        store: ProgressStore,
        clock: Clock,
        invalidator: CacheInvalidator | None = None,
    ):
        self._store = store
        self._clock = clock
        self._invalidator = invalidator

    async def record(self, result: SessionResult) -> bool:
        """
        Persist one session.

        Returns:
            False when nothing was viewed and therefore nothing written.

        Raises:
            StoreUnavailableError: the write failed and nothing was applied;
                the same result may be recorded again.
        """
        if result.viewed <= 0:
            logger.warning(
                f"Skipped recording session without viewed cards: deckId={result.deck_id}"
            )
            return False

        logger.debug(
            f"Recording session: deckId={result.deck_id}, viewed={result.viewed}, "
            f"correct={result.correct}, hard={result.hard}"
        )
        await self._store.append_session(
            result.deck_id,
            self._clock.today(),
            result.viewed,
            result.correct,
            result.hard,
            result.duration_ms,
            result.answer_delay_ms,
            result.known_card_ids_delta,
        )

        if self._invalidator is not None:
            self._invalidator.on_progress_changed(result.deck_id)

        logger.info(
            f"Session recorded: deckId={result.deck_id}, viewed={result.viewed}, "
            f"correct={result.correct}, hard={result.hard}, durationMs={result.duration_ms}, "
            f"knownDelta={len(result.known_card_ids_delta)}"
        )
        return True

    async def record_session(
        self,
        deck_id: int,
        viewed: int,
        correct: int,
        hard: int,
        duration_ms: int = 0,
        answer_delay_ms: int = 0,
        known_card_ids_delta: Collection[int] = (),
    ) -> bool:
        """Record raw session tallies (validated through SessionResult)."""
        try:
            result = SessionResult(
                deck_id=deck_id,
                viewed=viewed,
                correct=correct,
                hard=hard,
                duration_ms=duration_ms,
                answer_delay_ms=answer_delay_ms,
                known_card_ids_delta=tuple(known_card_ids_delta),
            )
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid session tallies: {e}") from e
        return await self.record(result)
