# Application Cache Package
from .invalidation import CacheInvalidator
from .keyed_cache import MISS, CacheStats, KeyedCache
from .read_caches import (
    CountKey,
    KnownCardsCache,
    PaginationCountCache,
    UserDecksCache,
    create_known_cards_cache,
    create_pagination_count_cache,
    create_user_decks_cache,
)

__all__ = [
    "MISS",
    "CacheStats",
    "KeyedCache",
    "CacheInvalidator",
    "CountKey",
    "KnownCardsCache",
    "PaginationCountCache",
    "UserDecksCache",
    "create_known_cards_cache",
    "create_pagination_count_cache",
    "create_user_decks_cache",
]
