"""
Practice session composition and completion.

Builds PracticeSession instances from a deck's unknown cards and writes a
finished session through the StatsAggregator.
"""

import logging
import random as random_module
from collections.abc import Collection, Sequence

from memo.application.stats.aggregator import StatsAggregator
from memo.application.stats.service import StatsService
from memo.domain.interfaces import Clock, DeckProvider, FlashcardProvider, SettingsProvider
from memo.domain.models import Deck, Flashcard, PracticeDirection
from memo.domain.practice.session import CompletionMetrics, PracticeSession

logger = logging.getLogger(__name__)


class PracticeSessionService:
    """
    Session composition: the deck's cards minus its known set, optionally
    shuffled, truncated to the requested count.

    Arguments are assumed valid; PracticePresenter validates them.
    """

    def __init__(
        self,
        flashcards: FlashcardProvider,
        decks: DeckProvider,
        stats: StatsService,
        aggregator: StatsAggregator,
        settings: SettingsProvider,
        clock: Clock,
        rng: random_module.Random | None = None,
    ):
        self._flashcards = flashcards
        self._decks = decks
        self._stats = stats
        self._aggregator = aggregator
        self._settings = settings
        self._clock = clock
        self._rng = rng or random_module.Random()

    async def load_deck(self, deck_id: int) -> Deck | None:
        return await self._decks.get_by_id(deck_id)

    async def get_not_known_cards(self, deck_id: int) -> list[Flashcard]:
        """All deck cards minus the known set, in stored order. Not cached itself."""
        cards = await self._flashcards.list_by_deck(deck_id)
        known = await self._stats.get_known_card_ids(deck_id)
        return [card for card in cards if card.id not in known]

    async def resolve_default_count(self, deck_id: int) -> int:
        return self.resolve_default_count_for(await self.get_not_known_cards(deck_id))

    def resolve_default_count_for(self, not_known_cards: Sequence[Flashcard]) -> int:
        """Clamp the unknown-card count into [1, configured default]."""
        configured = max(1, self._settings.default_session_count())
        return min(max(len(not_known_cards), 1), configured)

    def is_random(self) -> bool:
        return self._settings.default_random_order()

    def default_direction(self) -> PracticeDirection:
        return self._settings.default_direction() or PracticeDirection.FRONT_TO_BACK

    async def prepare_session(self, deck_id: int, count: int, random: bool) -> list[Flashcard]:
        """
        Pick the cards for a run.

        Returns:
            Up to count unknown cards; an empty list means nothing to practice.
        """
        return self._compose(await self.get_not_known_cards(deck_id), count, random)

    async def start_session(
        self,
        deck_id: int,
        count: int,
        random: bool,
        direction: PracticeDirection | None = None,
    ) -> PracticeSession:
        cards = await self.prepare_session(deck_id, count, random)
        return self._new_session(deck_id, cards, direction)

    def start_session_with_cards(
        self,
        deck_id: int,
        preloaded_cards: Sequence[Flashcard],
        count: int,
        random: bool,
        direction: PracticeDirection | None = None,
    ) -> PracticeSession:
        """Start from cards the caller already loaded (e.g. for the grid)."""
        return self._new_session(deck_id, self._compose(preloaded_cards, count, random), direction)

    async def get_failed_cards(self, deck_id: int, failed_card_ids: Collection[int]) -> list[Flashcard]:
        """Cards marked hard in a run that are still unknown."""
        if not failed_card_ids:
            return []
        failed = set(failed_card_ids)
        return [card for card in await self.get_not_known_cards(deck_id) if card.id in failed]

    def start_repeat_session(
        self,
        deck_id: int,
        failed_cards: Sequence[Flashcard],
        direction: PracticeDirection | None = None,
    ) -> PracticeSession:
        cards = list(failed_cards)
        self._rng.shuffle(cards)
        return self._new_session(deck_id, cards, direction)

    async def record_and_persist(self, session: PracticeSession) -> bool:
        """
        Write a session through the aggregator once.

        The session is marked recorded only after the write succeeded, so a
        StoreUnavailableError leaves it retryable with the same tallies.

        Raises:
            SessionAlreadyRecordedError: the session was recorded before.
        """
        result = session.to_result()
        written = await self._aggregator.record(result)
        session.mark_recorded()
        return written

    def calculate_completion_metrics(self, session: PracticeSession) -> CompletionMetrics:
        return session.completion_metrics()

    def _compose(self, cards: Sequence[Flashcard], count: int, random: bool) -> list[Flashcard]:
        pool = list(cards)
        if not pool:
            return pool
        if random:
            self._rng.shuffle(pool)
        return pool[:count]

    def _new_session(
        self, deck_id: int, cards: Sequence[Flashcard], direction: PracticeDirection | None
    ) -> PracticeSession:
        session = PracticeSession(
            deck_id=deck_id,
            cards=cards,
            clock=self._clock,
            direction=direction or self.default_direction(),
        )
        logger.debug(f"Practice session started: deckId={deck_id}, cards={len(session.cards)}")
        return session
