"""
Practice Engine Factory
Centralizes the logic for selecting the progress store and wiring the services.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from memo.application.cache.invalidation import CacheInvalidator
from memo.application.cache.read_caches import (
    create_known_cards_cache,
    create_pagination_count_cache,
    create_user_decks_cache,
)
from memo.application.cards.deck_service import DeckListService
from memo.application.cards.query_service import CardQueryService
from memo.application.config import AppConfig
from memo.application.practice.presenter import PracticePresenter
from memo.application.practice.session_service import PracticeSessionService
from memo.application.practice.settings import PracticeSettings
from memo.application.stats.aggregator import StatsAggregator
from memo.application.stats.service import StatsService
from memo.domain.errors import InvalidArgumentError
from memo.domain.interfaces import Clock, DeckProvider, FlashcardProvider, SettingsProvider
from memo.domain.stats.ports import ProgressStore
from memo.infrastructure.adapters.stats.memory_store import InMemoryProgressStore
from memo.infrastructure.adapters.stats.sql_store import SqlProgressStore
from memo.infrastructure.clock import SystemClock

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


def get_progress_store(config: AppConfig) -> ProgressStore:
    """
    Returns the ProgressStore implementation for the configured database URL.

    "memory://" selects the in-process store; anything else is a SQLAlchemy URL.
    """
    if config.database_url == MEMORY_URL:
        logger.debug("Progress store: in-memory")
        return InMemoryProgressStore()

    try:
        url = make_url(config.database_url)
    except ArgumentError as e:
        raise InvalidArgumentError(f"Invalid database URL: {config.database_url}") from e
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Progress store: SQL ({url.get_backend_name()})")
    return SqlProgressStore.from_url(config.database_url)


def get_clock(config: AppConfig) -> Clock:
    return SystemClock(config.timezone)


def build_cache_invalidator(config: AppConfig) -> CacheInvalidator:
    return CacheInvalidator(
        known_cards=create_known_cards_cache(
            ttl_seconds=config.known_cards_ttl_seconds,
            max_size=config.known_cards_max_size,
        ),
        pagination_counts=create_pagination_count_cache(
            ttl_seconds=config.pagination_count_ttl_seconds,
            max_size=config.pagination_count_max_size,
            debounce_seconds=config.pagination_debounce_seconds,
        ),
        user_decks=create_user_decks_cache(
            ttl_seconds=config.user_decks_ttl_seconds,
            max_size=config.user_decks_max_size,
        ),
    )


@dataclass
class PracticeEngine:
    """Everything the UI layer needs, wired against one store and one set of caches."""

    store: ProgressStore
    clock: Clock
    invalidator: CacheInvalidator
    stats: StatsService
    aggregator: StatsAggregator
    sessions: PracticeSessionService
    presenter: PracticePresenter
    cards: CardQueryService
    decks: DeckListService


def build_practice_engine(
    config: AppConfig,
    flashcards: FlashcardProvider,
    decks: DeckProvider,
    store: ProgressStore | None = None,
    clock: Clock | None = None,
    settings: SettingsProvider | None = None,
    rng: random.Random | None = None,
) -> PracticeEngine:
    """Wire the services; store, clock and settings default to the config's."""
    store = store if store is not None else get_progress_store(config)
    clock = clock if clock is not None else get_clock(config)
    settings = settings if settings is not None else PracticeSettings.from_config(config)
    invalidator = build_cache_invalidator(config)

    stats = StatsService(store, clock, invalidator, deck_provider=decks)
    aggregator = StatsAggregator(store, clock, invalidator)
    sessions = PracticeSessionService(
        flashcards=flashcards,
        decks=decks,
        stats=stats,
        aggregator=aggregator,
        settings=settings,
        clock=clock,
        rng=rng,
    )
    return PracticeEngine(
        store=store,
        clock=clock,
        invalidator=invalidator,
        stats=stats,
        aggregator=aggregator,
        sessions=sessions,
        presenter=PracticePresenter(sessions),
        cards=CardQueryService(flashcards, stats, invalidator),
        decks=DeckListService(decks, invalidator),
    )
