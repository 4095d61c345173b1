"""Per-user deck list served through the UserDecksCache."""

import logging

from memo.application.cache.invalidation import CacheInvalidator
from memo.domain.interfaces import DeckProvider
from memo.domain.models import Deck
from memo.domain.validation import require_positive_id

logger = logging.getLogger(__name__)


class DeckListService:
    def __init__(self, decks: DeckProvider, invalidator: CacheInvalidator):
        self._decks = decks
        self._invalidator = invalidator

    async def list_user_decks(self, user_id: int) -> tuple[Deck, ...]:
        require_positive_id("user_id", user_id)

        async def load() -> tuple[Deck, ...]:
            return tuple(await self._decks.list_by_user(user_id))

        return await self._invalidator.user_decks.get_or_load_async(user_id, load)

    def notify_deck_modified(self, deck_id: int, user_id: int) -> None:
        """Call after a deck or one of its cards was created, updated or deleted."""
        require_positive_id("deck_id", deck_id)
        require_positive_id("user_id", user_id)
        self._invalidator.on_deck_modified(deck_id, user_id)
