"""
Ports (interfaces) for the collaborators the practice engine consumes.

Decks, flashcards and settings are owned by the surrounding application; the
engine only reads them through these abstractions.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime

from .models import Deck, Flashcard, PracticeDirection


class FlashcardProvider(ABC):
    @abstractmethod
    async def list_by_deck(self, deck_id: int) -> list[Flashcard]:
        """
        List the cards of a deck in their stored order.

        Args:
            deck_id: Deck to list.

        Returns:
            The deck's cards; empty list for an empty or unknown deck.
        """
        pass


class DeckProvider(ABC):
    @abstractmethod
    async def get_by_id(self, deck_id: int) -> Deck | None:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: int) -> list[Deck]:
        pass


class SettingsProvider(ABC):
    """Practice preferences used when the caller does not choose explicitly."""

    @abstractmethod
    def default_session_count(self) -> int:
        pass

    @abstractmethod
    def default_random_order(self) -> bool:
        pass

    @abstractmethod
    def default_direction(self) -> PracticeDirection:
        pass


class Clock(ABC):
    """
    Source of the current time.

    Injected everywhere "now" or "today" matters so tests can control it.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware timestamp."""
        pass

    def today(self) -> date:
        """Calendar date of now() in the clock's timezone."""
        return self.now().date()
