import random
from datetime import datetime, timedelta, timezone

import pytest

from memo.application.config import AppConfig
from memo.application.factory import build_practice_engine
from memo.application.practice.settings import PracticeSettings
from memo.domain.interfaces import Clock, DeckProvider, FlashcardProvider
from memo.domain.models import Deck, Flashcard
from memo.infrastructure.adapters.stats.memory_store import InMemoryProgressStore


class ManualClock(Clock):
    """Clock that only moves when a test says so."""

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 5, 14, 9, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now += timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self._now = value


class FakeTicker:
    """Monotonic seconds for KeyedCache.time_source."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeFlashcardProvider(FlashcardProvider):
    def __init__(self, cards: list[Flashcard] | None = None):
        self.cards = list(cards or [])
        self.calls = 0

    async def list_by_deck(self, deck_id: int) -> list[Flashcard]:
        self.calls += 1
        return [card for card in self.cards if card.deck_id == deck_id]


class FakeDeckProvider(DeckProvider):
    def __init__(self, decks: list[Deck] | None = None):
        self.decks = list(decks or [])
        self.calls = 0

    async def get_by_id(self, deck_id: int) -> Deck | None:
        return next((deck for deck in self.decks if deck.id == deck_id), None)

    async def list_by_user(self, user_id: int) -> list[Deck]:
        self.calls += 1
        return [deck for deck in self.decks if deck.user_id == user_id]


def make_cards(deck_id: int, ids) -> list[Flashcard]:
    return [
        Flashcard(id=i, deck_id=deck_id, front_text=f"front {i}", back_text=f"back {i}")
        for i in ids
    ]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Points HOME at a temp dir so no user config file is picked up."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in ("MEMO_DATABASE_URL", "MEMO_TIMEZONE", "MEMO_DEFAULT_SESSION_COUNT"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def ticker():
    return FakeTicker()


@pytest.fixture
def deck():
    return Deck(id=1, user_id=7, title="Spanish verbs")


@pytest.fixture
def flashcards():
    return FakeFlashcardProvider(make_cards(1, range(1, 6)) + make_cards(2, range(101, 104)))


@pytest.fixture
def decks(deck):
    return FakeDeckProvider([deck, Deck(id=2, user_id=7, title="Capitals")])


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def engine_factory(mock_home, flashcards, decks, store, clock):
    """Builds a PracticeEngine over the in-memory store with a seeded rng."""

    def build(session_count=10, random_order=False, seed=42):
        return build_practice_engine(
            AppConfig(database_url="memory://"),
            flashcards=flashcards,
            decks=decks,
            store=store,
            clock=clock,
            settings=PracticeSettings(session_count=session_count, random_order=random_order),
            rng=random.Random(seed),
        )

    return build


@pytest.fixture
def engine(engine_factory):
    return engine_factory()


@pytest.fixture
def card_factory():
    return make_cards


@pytest.fixture
def provider_factory():
    """Builds fake flashcard and deck providers: provider_factory(cards, decks)."""

    def build(cards=(), decks_=()):
        return FakeFlashcardProvider(list(cards)), FakeDeckProvider(list(decks_))

    return build
