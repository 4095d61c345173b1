"""Routes write notifications to the read caches they make stale."""

import logging

from .keyed_cache import CacheStats
from .read_caches import (
    KnownCardsCache,
    PaginationCountCache,
    UserDecksCache,
    create_known_cards_cache,
    create_pagination_count_cache,
    create_user_decks_cache,
    is_status_filtered,
)

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """
    Owns the three read caches and knows which writes affect which entries.

    - Progress change (known toggle, recorded session, reset): drops the
      deck's known set and, debounced, its KNOWN_ONLY/UNKNOWN_ONLY counts.
    - Deck modification (card or deck create/update/delete): drops every
      count and the known set of the deck, and the owner's deck list.
    """

    def __init__(
        self,
        known_cards: KnownCardsCache | None = None,
        pagination_counts: PaginationCountCache | None = None,
        user_decks: UserDecksCache | None = None,
    ):
        self.known_cards = known_cards if known_cards is not None else create_known_cards_cache()
        self.pagination_counts = (
            pagination_counts if pagination_counts is not None else create_pagination_count_cache()
        )
        self.user_decks = user_decks if user_decks is not None else create_user_decks_cache()

    def on_progress_changed(self, deck_id: int) -> None:
        self.known_cards.invalidate(deck_id)
        cleared = self.pagination_counts.request_invalidation(deck_id, is_status_filtered)
        logger.debug(
            f"Progress changed for deckId={deck_id}: known cards invalidated, "
            f"counts {'invalidated' if cleared else 'marked stale (cooldown)'}"
        )

    def on_deck_modified(self, deck_id: int, user_id: int | None = None) -> None:
        self.known_cards.invalidate(deck_id)
        self.pagination_counts.invalidate_scope(deck_id)
        if user_id is not None:
            self.user_decks.invalidate(user_id)
        logger.debug(f"Deck modified: deckId={deck_id}, userId={user_id}")

    def stats(self) -> dict[str, CacheStats]:
        return {
            cache.name: cache.stats()
            for cache in (self.known_cards, self.pagination_counts, self.user_decks)
        }

    def log_stats(self) -> None:
        for cache in (self.known_cards, self.pagination_counts, self.user_decks):
            cache.log_stats()
