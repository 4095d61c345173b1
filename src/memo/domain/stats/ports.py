"""
Ports (interfaces) for durable learning progress.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import date

from .models import DailyStatsRecord, DeckAggregate


class ProgressStore(ABC):
    """
    Port for known-card sets and per-deck daily counters.

    All ids must be positive; implementations raise InvalidArgumentError
    before touching storage otherwise, and wrap backend failures in
    StoreUnavailableError.

    Implementations:
        - InMemoryProgressStore: process-local dictionaries.
        - SqlProgressStore: SQLAlchemy over SQLite or PostgreSQL.
    """

    @abstractmethod
    async def get_known_card_ids(self, deck_id: int) -> frozenset[int]:
        pass

    @abstractmethod
    async def get_known_card_ids_batch(
        self, deck_ids: Collection[int]
    ) -> dict[int, frozenset[int]]:
        """
        Fetch the known sets of several decks in one read.

        Returns:
            One entry per requested deck; decks with no known cards map to an
            empty set.
        """
        pass

    @abstractmethod
    async def is_card_known(self, deck_id: int, card_id: int) -> bool:
        pass

    @abstractmethod
    async def set_card_known(self, deck_id: int, card_id: int, known: bool) -> None:
        """
        Add or remove a card from the deck's known set.

        Idempotent: adding a present id or removing an absent one changes nothing.
        """
        pass

    @abstractmethod
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
        """
        Accumulate one completed session into the day's row and the known set.

        The counter upsert and the known-card inserts are applied as one
        transaction. Counters are always added to the stored values, never
        overwritten. Sessions with viewed <= 0 are ignored.
        """
        pass

    @abstractmethod
    async def reset_deck_progress(self, deck_id: int) -> None:
        """Delete every daily row and known card of the deck. Irreversible."""
        pass

    @abstractmethod
    async def get_daily_stats(self, deck_id: int) -> list[DailyStatsRecord]:
        """Daily rows of a deck sorted by date ascending."""
        pass

    @abstractmethod
    async def get_aggregates_for_decks(
        self, deck_ids: Collection[int], today: date
    ) -> dict[int, DeckAggregate]:
        """
        Roll up daily rows per deck in a single read.

        Decks without any rows are still present with all-zero aggregates.
        """
        pass
