"""
Core domain models for decks and flashcards.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from enum import Enum


class PracticeDirection(str, Enum):
    """Which side of a card is shown as the question."""

    FRONT_TO_BACK = "FRONT_TO_BACK"
    BACK_TO_FRONT = "BACK_TO_FRONT"

    def prompt_of(self, card: "Flashcard") -> str:
        return card.front_text if self is PracticeDirection.FRONT_TO_BACK else card.back_text

    def answer_of(self, card: "Flashcard") -> str:
        return card.back_text if self is PracticeDirection.FRONT_TO_BACK else card.front_text


class FilterOption(str, Enum):
    """Card grid filter by known status."""

    ALL = "ALL"
    KNOWN_ONLY = "KNOWN_ONLY"
    UNKNOWN_ONLY = "UNKNOWN_ONLY"


@dataclass(frozen=True)
class Flashcard:
    """
    A single card in a deck.

    Attributes:
        id: Card id (positive).
        deck_id: Owning deck.
        front_text: Question side.
        back_text: Answer side.
        example: Optional usage example shown with the answer.
    """

    id: int
    deck_id: int
    front_text: str
    back_text: str
    example: str | None = None


@dataclass(frozen=True)
class Deck:
    id: int
    user_id: int
    title: str
    description: str | None = None
