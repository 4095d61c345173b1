"""Practice presenter: the entry point the UI layer drives a practice run through."""

import logging
from collections.abc import Collection

from memo.domain.errors import EmptySessionPoolError
from memo.domain.models import Deck, Flashcard, PracticeDirection
from memo.domain.practice.session import CompletionMetrics, PracticeSession, Progress
from memo.domain.validation import require_positive_count, require_positive_id

from .session_service import PracticeSessionService

logger = logging.getLogger(__name__)


class PracticePresenter:
    """
    Thin orchestration over PracticeSessionService.

    Every id and count is validated here, before anything is read or written,
    so errors surface as InvalidArgumentError at the outermost call.
    """

    def __init__(self, sessions: PracticeSessionService):
        if sessions is None:
            raise ValueError("PracticeSessionService cannot be None")
        self._sessions = sessions

    # ------------------------------------------------------------------
    # Deck and preferences
    # ------------------------------------------------------------------
    async def load_deck(self, deck_id: int) -> Deck | None:
        require_positive_id("deck_id", deck_id)
        return await self._sessions.load_deck(deck_id)

    async def get_not_known_cards(self, deck_id: int) -> list[Flashcard]:
        require_positive_id("deck_id", deck_id)
        return await self._sessions.get_not_known_cards(deck_id)

    async def resolve_default_count(self, deck_id: int) -> int:
        require_positive_id("deck_id", deck_id)
        return await self._sessions.resolve_default_count(deck_id)

    def is_random(self) -> bool:
        return self._sessions.is_random()

    def default_direction(self) -> PracticeDirection:
        return self._sessions.default_direction()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    async def prepare_session(self, deck_id: int, count: int, random: bool) -> list[Flashcard]:
        require_positive_id("deck_id", deck_id)
        require_positive_count("count", count)
        return await self._sessions.prepare_session(deck_id, count, random)

    async def start_session(
        self,
        deck_id: int,
        count: int | None = None,
        random: bool | None = None,
        direction: PracticeDirection | None = None,
    ) -> PracticeSession:
        """
        Start a run over the deck's unknown cards.

        Omitted arguments fall back to the practice settings.

        Raises:
            InvalidArgumentError: non-positive deck id or count.
            EmptySessionPoolError: every card of the deck is already known.
        """
        require_positive_id("deck_id", deck_id)
        if count is not None:
            require_positive_count("count", count)

        not_known = await self._sessions.get_not_known_cards(deck_id)
        if not not_known:
            logger.info(f"Nothing to practice in deck {deck_id}: all cards are known")
            raise EmptySessionPoolError(deck_id)

        if count is None:
            count = self._sessions.resolve_default_count_for(not_known)
        if random is None:
            random = self.is_random()
        return self._sessions.start_session_with_cards(deck_id, not_known, count, random, direction)

    async def start_repeat_session(
        self,
        session: PracticeSession,
        direction: PracticeDirection | None = None,
    ) -> PracticeSession:
        """
        Start a new run over the cards marked hard in session.

        Raises:
            EmptySessionPoolError: no hard card of the run is still unknown.
        """
        failed = await self._sessions.get_failed_cards(session.deck_id, session.failed_card_ids)
        if not failed:
            raise EmptySessionPoolError(session.deck_id)
        return self._sessions.start_repeat_session(
            session.deck_id, failed, direction or session.direction
        )

    async def get_failed_cards(self, deck_id: int, failed_card_ids: Collection[int]) -> list[Flashcard]:
        require_positive_id("deck_id", deck_id)
        return await self._sessions.get_failed_cards(deck_id, failed_card_ids)

    def is_complete(self, session: PracticeSession) -> bool:
        return session.is_complete()

    def current_card(self, session: PracticeSession) -> Flashcard | None:
        return session.current_card()

    def start_question(self, session: PracticeSession) -> None:
        session.start_question()

    def reveal(self, session: PracticeSession) -> None:
        session.reveal()

    def mark_know(self, session: PracticeSession) -> None:
        session.mark_know()

    def mark_hard(self, session: PracticeSession) -> None:
        session.mark_hard()

    def progress(self, session: PracticeSession) -> Progress:
        return session.progress()

    async def record_and_persist(self, session: PracticeSession) -> bool:
        return await self._sessions.record_and_persist(session)

    def completion_metrics(self, session: PracticeSession) -> CompletionMetrics:
        return self._sessions.calculate_completion_metrics(session)
