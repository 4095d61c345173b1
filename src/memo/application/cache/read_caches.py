"""
The three read caches in front of progress and deck queries.

Each is a KeyedCache instance; the factory functions fix key/value types and
the defaults from memo.domain.constants.
"""

from dataclasses import dataclass

from memo.domain import constants
from memo.domain.models import Deck, FilterOption

from .keyed_cache import KeyedCache

KnownCardsCache = KeyedCache[int, frozenset[int]]
UserDecksCache = KeyedCache[int, tuple[Deck, ...]]


@dataclass(frozen=True)
class CountKey:
    """Fingerprint of a card-grid filter: deck, normalized search text and filter."""

    deck_id: int
    search_query: str
    filter_option: FilterOption

    @classmethod
    def of(cls, deck_id: int, search_query: str | None, filter_option: FilterOption) -> "CountKey":
        return cls(deck_id, normalize_search(search_query), filter_option)


PaginationCountCache = KeyedCache[CountKey, int]


def normalize_search(search_query: str | None) -> str:
    return "" if search_query is None or not search_query.strip() else search_query.strip()


def is_status_filtered(key: CountKey) -> bool:
    """True for counts that change when a card flips between known and unknown."""
    return key.filter_option in (FilterOption.KNOWN_ONLY, FilterOption.UNKNOWN_ONLY)


def _deck_of(key: CountKey) -> int:
    return key.deck_id


def create_known_cards_cache(
    ttl_seconds: float | None = constants.KNOWN_CARDS_TTL_SECONDS,
    max_size: int | None = constants.KNOWN_CARDS_MAX_SIZE,
    **kwargs,
) -> KnownCardsCache:
    return KeyedCache(name="known-cards", ttl_seconds=ttl_seconds, max_size=max_size, **kwargs)


def create_pagination_count_cache(
    ttl_seconds: float | None = constants.PAGINATION_COUNT_TTL_SECONDS,
    max_size: int | None = constants.PAGINATION_COUNT_MAX_SIZE,
    debounce_seconds: float = constants.PAGINATION_DEBOUNCE_SECONDS,
    **kwargs,
) -> PaginationCountCache:
    return KeyedCache(
        name="pagination-count",
        ttl_seconds=ttl_seconds,
        max_size=max_size,
        debounce_seconds=debounce_seconds,
        scope_of=_deck_of,
        **kwargs,
    )


def create_user_decks_cache(
    ttl_seconds: float | None = constants.USER_DECKS_TTL_SECONDS,
    max_size: int | None = constants.USER_DECKS_MAX_SIZE,
    **kwargs,
) -> UserDecksCache:
    return KeyedCache(name="user-decks", ttl_seconds=ttl_seconds, max_size=max_size, **kwargs)
