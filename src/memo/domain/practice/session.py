"""
Practice session state machine.

A PracticeSession drives one run over a fixed list of cards:

    READY -> QUESTION_SHOWN -> ANSWER_REVEALED -> QUESTION_SHOWN ... -> COMPLETE

COMPLETE is reached when every card was marked know or hard. After a
successful write-through the session is RECORDED and refuses a second
recording. A session is owned by one interaction flow and is not thread-safe.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from memo.domain.errors import SessionAlreadyRecordedError
from memo.domain.interfaces import Clock
from memo.domain.models import Flashcard, PracticeDirection
from memo.domain.stats.models import SessionResult

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    READY = "READY"
    QUESTION_SHOWN = "QUESTION_SHOWN"
    ANSWER_REVEALED = "ANSWER_REVEALED"
    COMPLETE = "COMPLETE"
    RECORDED = "RECORDED"


@dataclass(frozen=True)
class Progress:
    """
    Position and tallies of a session for a progress bar.

    Attributes:
        current: 1-based position clamped to [1, total]; 0 for an empty session.
        total: Number of cards in the session.
        total_viewed: Cards answered so far.
        correct: Cards marked known.
        hard: Cards marked hard.
        percent: round(current * 100 / total), half-up; 0 for an empty session.
    """

    current: int
    total: int
    total_viewed: int
    correct: int
    hard: int
    percent: int


@dataclass(frozen=True)
class CompletionMetrics:
    """Summary shown when a run ends."""

    total_cards: int
    session_minutes: int  # at least 1
    avg_seconds: int  # average answer delay per viewed card, at least 1


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))


class PracticeSession:
    """
    One practice run over a deck.

    State changes only through start_question, reveal, mark_know and
    mark_hard; every other member is read-only.
    """

    def __init__(
        self,
        deck_id: int,
        cards: Sequence[Flashcard],
        clock: Clock,
        direction: PracticeDirection = PracticeDirection.FRONT_TO_BACK,
    ):
        self._deck_id = deck_id
        self._cards: tuple[Flashcard, ...] = tuple(cards)
        self._clock = clock
        self._direction = direction
        self._session_start = clock.now()

        self._index = 0
        self._showing_answer = False
        self._card_show_time: datetime | None = None
        self._question_started = False
        self._correct_count = 0
        self._hard_count = 0
        self._total_viewed = 0
        self._total_answer_delay_ms = 0
        self._known_card_ids_delta: list[int] = []
        self._failed_card_ids: list[int] = []

        self._result: SessionResult | None = None
        self._recorded = False

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------
    @property
    def deck_id(self) -> int:
        return self._deck_id

    @property
    def cards(self) -> tuple[Flashcard, ...]:
        return self._cards

    @property
    def direction(self) -> PracticeDirection:
        return self._direction

    @property
    def index(self) -> int:
        return self._index

    @property
    def showing_answer(self) -> bool:
        return self._showing_answer

    @property
    def card_show_time(self) -> datetime | None:
        return self._card_show_time

    @property
    def session_start(self) -> datetime:
        return self._session_start

    @property
    def correct_count(self) -> int:
        return self._correct_count

    @property
    def hard_count(self) -> int:
        return self._hard_count

    @property
    def total_viewed(self) -> int:
        return self._total_viewed

    @property
    def total_answer_delay_ms(self) -> int:
        return self._total_answer_delay_ms

    @property
    def known_card_ids_delta(self) -> tuple[int, ...]:
        return tuple(self._known_card_ids_delta)

    @property
    def failed_card_ids(self) -> tuple[int, ...]:
        return tuple(self._failed_card_ids)

    @property
    def is_recorded(self) -> bool:
        return self._recorded

    @property
    def state(self) -> SessionState:
        if self._recorded:
            return SessionState.RECORDED
        if self.is_complete():
            return SessionState.COMPLETE
        if self._showing_answer:
            return SessionState.ANSWER_REVEALED
        if self._question_started:
            return SessionState.QUESTION_SHOWN
        return SessionState.READY

    def is_complete(self) -> bool:
        return not self._cards or self._index >= len(self._cards)

    def current_card(self) -> Flashcard | None:
        if self.is_complete():
            return None
        return self._cards[self._index]

    def prompt_text(self) -> str | None:
        card = self.current_card()
        return self._direction.prompt_of(card) if card else None

    def answer_text(self) -> str | None:
        card = self.current_card()
        return self._direction.answer_of(card) if card else None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start_question(self) -> None:
        """Hide the answer and (re)start the reveal timer for the current card."""
        if self.is_complete():
            return
        self._showing_answer = False
        self._question_started = True
        self._card_show_time = self._clock.now()

    def reveal(self) -> None:
        """
        Show the answer and add the thinking time to the delay total.

        The delay is clamped at zero to tolerate clock skew. The show time
        survives advancing, so without a fresh start_question the delay is
        measured from the last one. No delay is recorded before the first
        start_question of the session.
        """
        if self.is_complete():
            return
        if self._card_show_time is not None:
            delay = _elapsed_ms(self._card_show_time, self._clock.now())
            self._total_answer_delay_ms += delay
        self._showing_answer = True

    def mark_know(self) -> None:
        card = self.current_card()
        if card is None:
            return
        self._total_viewed += 1
        self._correct_count += 1
        self._known_card_ids_delta.append(card.id)
        self._advance()

    def mark_hard(self) -> None:
        """Count the card as hard; it stays unknown."""
        card = self.current_card()
        if card is None:
            return
        self._total_viewed += 1
        self._hard_count += 1
        self._failed_card_ids.append(card.id)
        self._advance()

    def _advance(self) -> None:
        self._index += 1
        self._showing_answer = False
        self._question_started = False

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def progress(self) -> Progress:
        total = len(self._cards)
        if total == 0:
            current = 0
            percent = 0
        else:
            current = min(max(self._index + 1, 1), total)
            percent = _round_half_up(current * 100 / total)
        return Progress(
            current=current,
            total=total,
            total_viewed=self._total_viewed,
            correct=self._correct_count,
            hard=self._hard_count,
            percent=percent,
        )

    def completion_metrics(self) -> CompletionMetrics:
        total_cards = len(self._cards) if self._cards else self._total_viewed
        elapsed_seconds = _elapsed_ms(self._session_start, self._clock.now()) // 1000
        minutes = max(1, elapsed_seconds // 60)
        denominator = max(1, self._total_viewed)
        avg_seconds = max(1, _round_half_up(self._total_answer_delay_ms / denominator / 1000))
        return CompletionMetrics(
            total_cards=total_cards, session_minutes=minutes, avg_seconds=avg_seconds
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def to_result(self) -> SessionResult:
        """
        Snapshot the tallies for recording.

        The snapshot (including the elapsed duration) is taken on the first
        call and reused afterwards, so retrying a failed write records the
        same numbers.
        """
        if self._recorded:
            raise SessionAlreadyRecordedError(self._deck_id)
        if self._result is None:
            self._result = SessionResult(
                deck_id=self._deck_id,
                viewed=self._total_viewed,
                correct=self._correct_count,
                hard=self._hard_count,
                duration_ms=_elapsed_ms(self._session_start, self._clock.now()),
                answer_delay_ms=self._total_answer_delay_ms,
                known_card_ids_delta=tuple(self._known_card_ids_delta),
            )
        return self._result

    def mark_recorded(self) -> None:
        if self._recorded:
            raise SessionAlreadyRecordedError(self._deck_id)
        self._recorded = True
        logger.debug(f"Practice session for deck {self._deck_id} marked recorded")
