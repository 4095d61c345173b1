"""
Progress Stats Service: Application layer orchestrator.

Serves known-card reads through the KnownCardsCache and performs the direct
(non-session) progress writes: marking single cards known or unknown and
resetting a deck.
"""

import logging
from collections.abc import Collection, Iterable

from memo.application.cache.invalidation import CacheInvalidator
from memo.application.cache.keyed_cache import MISS
from memo.domain import constants
from memo.domain.interfaces import Clock, DeckProvider
from memo.domain.stats.models import DailyStatsRecord, DeckAggregate
from memo.domain.stats.ports import ProgressStore
from memo.domain.validation import require_positive_id, require_positive_ids

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(constants.AUDIT_LOGGER_NAME)


class StatsService:
    """
    Application service for known-card state and deck statistics.

    Depends on the ProgressStore port; every write notifies the
    CacheInvalidator, including writes that turn out to be no-ops.
    """

    def __init__(
        self,
        store: ProgressStore,
        clock: Clock,
        invalidator: CacheInvalidator,
        deck_provider: DeckProvider | None = None,
    ):
        """
        Args:
            store: The repository (port) for progress data.
            clock: Source of "today" for aggregates.
            invalidator: Owner of the read caches.
            deck_provider: Optional; adds deck context to the reset audit log.
        """
        self._store = store
        self._clock = clock
        self._invalidator = invalidator
        self._deck_provider = deck_provider

    @property
    def _known_cache(self):
        return self._invalidator.known_cards

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_known_card_ids(self, deck_id: int) -> frozenset[int]:
        require_positive_id("deck_id", deck_id)
        return await self._known_cache.get_or_load_async(
            deck_id, lambda: self._store.get_known_card_ids(deck_id)
        )

    async def get_known_card_ids_batch(self, deck_ids: Collection[int]) -> dict[int, frozenset[int]]:
        """
        Known sets for several decks: cached decks from the cache, the rest in
        one store read.
        """
        ids = list(dict.fromkeys(require_positive_ids("deck_ids", deck_ids)))
        if not ids:
            return {}

        result: dict[int, frozenset[int]] = {}
        missing: list[int] = []
        for deck_id in ids:
            cached = self._known_cache.get(deck_id)
            if cached is MISS:
                missing.append(deck_id)
            else:
                result[deck_id] = cached

        if missing:
            tokens = {deck_id: self._known_cache.version(deck_id) for deck_id in missing}
            loaded = await self._store.get_known_card_ids_batch(missing)
            for deck_id in missing:
                card_ids = loaded.get(deck_id, frozenset())
                self._known_cache.put(deck_id, card_ids, version=tokens[deck_id])
                result[deck_id] = card_ids

        logger.debug(
            f"Batch retrieval: {len(ids) - len(missing)} decks from cache, "
            f"{len(missing)} loaded from store"
        )
        return result

    async def is_card_known(self, deck_id: int, card_id: int) -> bool:
        require_positive_id("card_id", card_id)
        return card_id in await self.get_known_card_ids(deck_id)

    async def get_deck_progress_percent(self, deck_id: int, card_ids: Iterable[int]) -> int:
        """
        Percentage of the deck's current cards that are known.

        Known ids that are no longer among card_ids (deleted cards) are ignored.
        """
        deck_cards = set(card_ids)
        if not deck_cards:
            return 0
        known = len(deck_cards & await self.get_known_card_ids(deck_id))
        percent = int(100 * known / len(deck_cards) + 0.5)
        return min(max(percent, 0), 100)

    async def get_deck_aggregates(self, deck_ids: Collection[int]) -> dict[int, DeckAggregate]:
        if not deck_ids:
            return {}
        return await self._store.get_aggregates_for_decks(deck_ids, self._clock.today())

    async def get_daily_stats(self, deck_id: int) -> list[DailyStatsRecord]:
        return await self._store.get_daily_stats(deck_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def set_card_known(self, deck_id: int, card_id: int, known: bool) -> None:
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        logger.debug(f"Setting card {card_id} as {'KNOWN' if known else 'UNKNOWN'} for deck {deck_id}")
        await self._store.set_card_known(deck_id, card_id, known)
        self._invalidator.on_progress_changed(deck_id)
        logger.info(f"Card marked as {'known' if known else 'unknown'} in deck {deck_id}: cardId={card_id}")

    async def toggle_card_known(self, deck_id: int, card_id: int) -> bool:
        """
        Flip a card's known status.

        Returns:
            The new status.
        """
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        # read the store directly so a toggle never acts on a cached set
        currently_known = await self._store.is_card_known(deck_id, card_id)
        await self._store.set_card_known(deck_id, card_id, not currently_known)
        self._invalidator.on_progress_changed(deck_id)
        logger.info(
            f"Card toggled to {'unknown' if currently_known else 'known'} in deck {deck_id}: "
            f"cardId={card_id}"
        )
        return not currently_known

    async def reset_deck_progress(self, deck_id: int) -> None:
        require_positive_id("deck_id", deck_id)
        known_before = len(await self._store.get_known_card_ids(deck_id))
        await self._store.reset_deck_progress(deck_id)
        self._invalidator.on_progress_changed(deck_id)

        deck = await self._deck_provider.get_by_id(deck_id) if self._deck_provider else None
        if deck is not None:
            audit_logger.warning(
                f"Deck progress reset: deckId={deck_id}, title='{deck.title}', "
                f"userId={deck.user_id}, clearedCards={known_before}"
            )
        else:
            audit_logger.warning(f"Deck progress reset: deckId={deck_id}, clearedCards={known_before}")
        logger.info(f"Deck progress reset successfully: deckId={deck_id}, cleared {known_before} known cards")
