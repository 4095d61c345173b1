"""Contract tests run against every ProgressStore implementation."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from memo.domain.errors import InvalidArgumentError, StoreUnavailableError
from memo.domain.stats.models import DeckAggregate
from memo.infrastructure.adapters.stats.memory_store import InMemoryProgressStore
from memo.infrastructure.adapters.stats.sql_store import SqlProgressStore, known_cards

TODAY = date(2024, 5, 14)
YESTERDAY = TODAY - timedelta(days=1)


@pytest.fixture(params=["memory", "sqlite-memory", "sqlite-file"])
def progress_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryProgressStore()
        return
    url = "sqlite://" if request.param == "sqlite-memory" else f"sqlite:///{tmp_path / 'p.db'}"
    store = SqlProgressStore.from_url(url)
    yield store
    store.dispose()


async def append(store, deck_id=1, day=TODAY, viewed=1, correct=0, hard=0, delta=()):
    await store.append_session(deck_id, day, viewed, correct, hard, 1000, 200, list(delta))


class TestKnownCards:
    @pytest.mark.asyncio
    async def test_set_known_is_idempotent(self, progress_store):
        await progress_store.set_card_known(1, 5, True)
        await progress_store.set_card_known(1, 5, True)
        assert await progress_store.get_known_card_ids(1) == frozenset({5})
        assert await progress_store.is_card_known(1, 5)

    @pytest.mark.asyncio
    async def test_unset_known(self, progress_store):
        await progress_store.set_card_known(1, 5, True)
        await progress_store.set_card_known(1, 5, False)
        await progress_store.set_card_known(1, 6, False)
        assert await progress_store.get_known_card_ids(1) == frozenset()
        assert not await progress_store.is_card_known(1, 5)

    @pytest.mark.asyncio
    async def test_decks_are_separate(self, progress_store):
        await progress_store.set_card_known(1, 5, True)
        await progress_store.set_card_known(2, 7, True)
        assert await progress_store.get_known_card_ids(1) == frozenset({5})
        assert not await progress_store.is_card_known(2, 5)

    @pytest.mark.asyncio
    async def test_batch(self, progress_store):
        await progress_store.set_card_known(1, 5, True)
        await progress_store.set_card_known(2, 7, True)
        await progress_store.set_card_known(2, 8, True)

        batch = await progress_store.get_known_card_ids_batch([1, 2, 3])
        assert batch == {1: frozenset({5}), 2: frozenset({7, 8}), 3: frozenset()}


class TestSessions:
    @pytest.mark.asyncio
    async def test_same_day_sessions_add_up(self, progress_store):
        await append(progress_store, viewed=3)
        await append(progress_store, viewed=2)

        [row] = await progress_store.get_daily_stats(1)
        assert row.viewed == 5
        assert row.sessions == 2
        assert row.total_duration_ms == 2000
        assert row.total_answer_delay_ms == 400

    @pytest.mark.asyncio
    async def test_counters_never_decrease(self, progress_store):
        previous = None
        for viewed, correct, hard in [(3, 1, 2), (1, 0, 0), (4, 4, 0), (2, 1, 1)]:
            await append(progress_store, viewed=viewed, correct=correct, hard=hard)
            [row] = await progress_store.get_daily_stats(1)
            assert row.correct <= row.viewed
            assert row.hard <= row.viewed
            if previous is not None:
                assert row.viewed > previous.viewed
                assert row.sessions > previous.sessions
                assert row.correct >= previous.correct
                assert row.hard >= previous.hard
            previous = row

    @pytest.mark.asyncio
    async def test_delta_joins_known_set(self, progress_store):
        await progress_store.set_card_known(1, 1, True)
        await append(progress_store, viewed=3, correct=3, delta=[1, 2, 2, 3])
        assert await progress_store.get_known_card_ids(1) == frozenset({1, 2, 3})

    @pytest.mark.asyncio
    async def test_nothing_viewed_is_ignored(self, progress_store):
        await append(progress_store, viewed=0)
        assert await progress_store.get_daily_stats(1) == []

    @pytest.mark.asyncio
    async def test_rows_are_per_day_in_order(self, progress_store):
        await append(progress_store, day=TODAY, viewed=2)
        await append(progress_store, day=YESTERDAY, viewed=1)

        rows = await progress_store.get_daily_stats(1)
        assert [row.date for row in rows] == [YESTERDAY, TODAY]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "viewed, correct, hard",
        [(1, 2, 0), (1, 0, 2), (-1, 0, 0), (1, -1, 0)],
    )
    async def test_invalid_counters(self, progress_store, viewed, correct, hard):
        with pytest.raises(InvalidArgumentError):
            await append(progress_store, viewed=viewed, correct=correct, hard=hard)
        assert await progress_store.get_daily_stats(1) == []

    @pytest.mark.asyncio
    async def test_invalid_ids(self, progress_store):
        with pytest.raises(InvalidArgumentError):
            await append(progress_store, deck_id=0)
        with pytest.raises(InvalidArgumentError):
            await append(progress_store, delta=[0])
        with pytest.raises(InvalidArgumentError):
            await progress_store.set_card_known(1, -2, True)
        with pytest.raises(InvalidArgumentError):
            await append(progress_store, day=None)


class TestConcurrentSessions:
    @pytest.fixture(params=["memory", "sqlite-file"])
    def shared_store(self, request, tmp_path):
        if request.param == "memory":
            yield InMemoryProgressStore()
            return
        store = SqlProgressStore.from_url(f"sqlite:///{tmp_path / 'shared.db'}")
        yield store
        store.dispose()

    def test_parallel_sessions_on_same_day_add_up(self, shared_store):
        sessions = [(i % 4 + 1, i) for i in range(1, 41)]

        def run(viewed, card_id):
            asyncio.run(append(shared_store, viewed=viewed, correct=1, delta=[card_id]))

        with ThreadPoolExecutor(max_workers=8) as pool:
            for future in [pool.submit(run, viewed, card_id) for viewed, card_id in sessions]:
                future.result()

        [row] = asyncio.run(shared_store.get_daily_stats(1))
        assert row.sessions == len(sessions)
        assert row.viewed == sum(viewed for viewed, _ in sessions)
        assert row.correct == len(sessions)
        assert row.total_duration_ms == 1000 * len(sessions)
        known = asyncio.run(shared_store.get_known_card_ids(1))
        assert known == frozenset(card_id for _, card_id in sessions)


class TestAggregatesAndReset:
    @pytest.mark.asyncio
    async def test_aggregates(self, progress_store):
        await append(progress_store, day=YESTERDAY, viewed=4, correct=3, hard=1)
        await append(progress_store, day=TODAY, viewed=2, correct=1, hard=1)
        await append(progress_store, deck_id=2, day=YESTERDAY, viewed=1, correct=1)

        result = await progress_store.get_aggregates_for_decks([1, 2, 3], TODAY)

        assert result[1] == DeckAggregate(
            sessions_all=2,
            viewed_all=6,
            correct_all=4,
            hard_all=2,
            sessions_today=1,
            viewed_today=2,
            correct_today=1,
            hard_today=1,
        )
        assert result[2].viewed_all == 1
        assert result[2].viewed_today == 0
        assert result[3] == DeckAggregate()

    @pytest.mark.asyncio
    async def test_reset(self, progress_store):
        await append(progress_store, viewed=3, correct=3, delta=[1, 2, 3])
        await append(progress_store, deck_id=2, viewed=1, correct=1, delta=[9])

        await progress_store.reset_deck_progress(1)

        assert await progress_store.get_known_card_ids(1) == frozenset()
        assert await progress_store.get_daily_stats(1) == []
        assert (await progress_store.get_aggregates_for_decks([1], TODAY))[1] == DeckAggregate()
        assert await progress_store.get_known_card_ids(2) == frozenset({9})


class TestSqlStore:
    @pytest.mark.asyncio
    async def test_failed_write_applies_nothing(self):
        store = SqlProgressStore.from_url("sqlite://")
        known_cards.drop(store.engine)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await append(store, viewed=2, correct=2, delta=[1, 2])

        assert exc_info.value.__cause__ is not None
        assert await store.get_daily_stats(1) == []

    @pytest.mark.asyncio
    async def test_missing_schema_is_unavailable(self, tmp_path):
        store = SqlProgressStore.from_url(f"sqlite:///{tmp_path / 'empty.db'}", create_schema=False)
        with pytest.raises(StoreUnavailableError):
            await store.get_known_card_ids(1)

    def test_unsupported_dialect(self):
        engine = MagicMock()
        engine.dialect.name = "mysql"
        with pytest.raises(InvalidArgumentError, match="mysql"):
            SqlProgressStore(engine)

    def test_invalid_url(self):
        with pytest.raises(InvalidArgumentError, match="Invalid database URL"):
            SqlProgressStore.from_url("not a url")

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'p.db'}"
        store = SqlProgressStore.from_url(url)
        await append(store, viewed=2, correct=1, delta=[4])
        store.dispose()

        reopened = SqlProgressStore.from_url(url)
        assert await reopened.get_known_card_ids(1) == frozenset({4})
        [row] = await reopened.get_daily_stats(1)
        assert row.viewed == 2
        reopened.dispose()
