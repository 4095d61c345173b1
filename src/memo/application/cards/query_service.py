"""
Card grid queries: filtered counts and pages of a deck's cards.

Counts go through the PaginationCountCache so page counts do not re-run the
filter on every render.
"""

import logging
import math
from dataclasses import dataclass

from memo.application.cache.invalidation import CacheInvalidator
from memo.application.cache.read_caches import CountKey
from memo.application.stats.service import StatsService
from memo.domain import constants
from memo.domain.interfaces import FlashcardProvider
from memo.domain.models import FilterOption, Flashcard
from memo.domain.validation import require_non_negative, require_positive_count, require_positive_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    items: list[Flashcard]
    page: int  # 0-based
    page_size: int
    total: int
    page_count: int


def _matches(card: Flashcard, needle: str) -> bool:
    if not needle:
        return True
    haystacks = (card.front_text, card.back_text, card.example or "")
    return any(needle in text.lower() for text in haystacks)


class CardQueryService:
    def __init__(
        self,
        flashcards: FlashcardProvider,
        stats: StatsService,
        invalidator: CacheInvalidator,
    ):
        self._flashcards = flashcards
        self._stats = stats
        self._counts = invalidator.pagination_counts

    async def count_cards(
        self,
        deck_id: int,
        search_query: str | None = None,
        filter_option: FilterOption = FilterOption.ALL,
    ) -> int:
        require_positive_id("deck_id", deck_id)
        key = CountKey.of(deck_id, search_query, filter_option)

        async def load() -> int:
            return len(await self._filtered(key))

        return await self._counts.get_or_load_async(key, load)

    async def page_cards(
        self,
        deck_id: int,
        search_query: str | None = None,
        filter_option: FilterOption = FilterOption.ALL,
        page: int = 0,
        page_size: int = constants.DEFAULT_PAGE_SIZE,
    ) -> Page:
        require_positive_id("deck_id", deck_id)
        require_non_negative("page", page)
        require_positive_count("page_size", page_size)

        key = CountKey.of(deck_id, search_query, filter_option)
        cards = await self._filtered(key)
        total = await self.count_cards(deck_id, search_query, filter_option)
        start = page * page_size
        return Page(
            items=cards[start : start + page_size],
            page=page,
            page_size=page_size,
            total=total,
            page_count=math.ceil(total / page_size) if total else 0,
        )

    async def _filtered(self, key: CountKey) -> list[Flashcard]:
        cards = await self._flashcards.list_by_deck(key.deck_id)
        needle = key.search_query.lower()
        cards = [card for card in cards if _matches(card, needle)]
        if key.filter_option is FilterOption.ALL:
            return cards

        known = await self._stats.get_known_card_ids(key.deck_id)
        want_known = key.filter_option is FilterOption.KNOWN_ONLY
        return [card for card in cards if (card.id in known) == want_known]
