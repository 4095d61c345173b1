import logging
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from memo.application.cache.invalidation import CacheInvalidator
from memo.application.stats.service import StatsService
from memo.domain.errors import InvalidArgumentError
from memo.infrastructure.adapters.stats.memory_store import InMemoryProgressStore


@pytest.fixture
def invalidator():
    return CacheInvalidator()


@pytest.fixture
def service(store, clock, invalidator, decks):
    return StatsService(store, clock, invalidator, deck_provider=decks)


class TestKnownCards:
    @pytest.mark.asyncio
    async def test_read_through_cache(self, clock, invalidator):
        store = AsyncMock()
        store.get_known_card_ids.return_value = frozenset({1, 2})
        service = StatsService(store, clock, invalidator)

        assert await service.get_known_card_ids(1) == frozenset({1, 2})
        assert await service.get_known_card_ids(1) == frozenset({1, 2})
        store.get_known_card_ids.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_write_is_visible_on_next_read(self, service):
        assert await service.get_known_card_ids(1) == frozenset()
        await service.set_card_known(1, 3, True)
        assert await service.get_known_card_ids(1) == frozenset({3})
        await service.set_card_known(1, 3, False)
        assert await service.get_known_card_ids(1) == frozenset()

    @pytest.mark.asyncio
    async def test_noop_write_still_invalidates(self, service, invalidator):
        await service.get_known_card_ids(1)
        await service.set_card_known(1, 3, False)
        assert 1 not in invalidator.known_cards

    @pytest.mark.asyncio
    async def test_is_card_known(self, service):
        await service.set_card_known(1, 4, True)
        assert await service.is_card_known(1, 4)
        assert not await service.is_card_known(1, 5)

    @pytest.mark.asyncio
    async def test_toggle_reads_the_store(self, service, store, invalidator):
        # a cached set that disagrees with the store must not drive the toggle
        invalidator.known_cards.put(1, frozenset({8}))
        assert await service.toggle_card_known(1, 8) is True
        assert await store.is_card_known(1, 8)
        assert await service.toggle_card_known(1, 8) is False
        assert await service.get_known_card_ids(1) == frozenset()

    @pytest.mark.asyncio
    async def test_batch_mixes_cache_and_store(self, clock, invalidator):
        store = AsyncMock()
        store.get_known_card_ids_batch.return_value = {2: frozenset({20})}
        service = StatsService(store, clock, invalidator)
        invalidator.known_cards.put(1, frozenset({10}))

        result = await service.get_known_card_ids_batch([1, 2, 3, 2])

        assert result == {1: frozenset({10}), 2: frozenset({20}), 3: frozenset()}
        store.get_known_card_ids_batch.assert_awaited_once_with([2, 3])
        assert invalidator.known_cards.get(3) == frozenset()

    @pytest.mark.asyncio
    async def test_batch_of_nothing(self, service):
        assert await service.get_known_card_ids_batch([]) == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("deck_id", [0, -3, None])
    async def test_invalid_deck_id(self, service, deck_id):
        with pytest.raises(InvalidArgumentError):
            await service.get_known_card_ids(deck_id)

    @pytest.mark.asyncio
    async def test_invalid_card_id(self, service):
        with pytest.raises(InvalidArgumentError):
            await service.set_card_known(1, 0, True)


class TestDeckProgress:
    @pytest.mark.asyncio
    async def test_percent_of_current_cards(self, service):
        for card_id in (1, 2, 99):
            await service.set_card_known(1, card_id, True)

        # card 99 no longer belongs to the deck
        assert await service.get_deck_progress_percent(1, [1, 2, 3]) == 67
        assert await service.get_deck_progress_percent(1, [1, 2]) == 100
        assert await service.get_deck_progress_percent(1, []) == 0

    @pytest.mark.asyncio
    async def test_aggregates_split_today(self, service, store, clock):
        await store.append_session(1, clock.today() - timedelta(days=1), 4, 3, 1, 0, 0, [])
        await store.append_session(1, clock.today(), 2, 1, 0, 0, 0, [])

        aggregates = await service.get_deck_aggregates([1, 2])

        assert aggregates[1].sessions_all == 2
        assert aggregates[1].viewed_all == 6
        assert aggregates[1].viewed_today == 2
        assert aggregates[1].hard_today == 0
        assert aggregates[2].sessions_all == 0

    @pytest.mark.asyncio
    async def test_aggregates_of_nothing(self, service):
        assert await service.get_deck_aggregates([]) == {}


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_clears_and_audits(self, service, store, clock, caplog):
        await store.append_session(1, clock.today(), 2, 2, 0, 0, 0, [1, 2])
        await service.get_known_card_ids(1)

        with caplog.at_level(logging.WARNING, logger="memo.audit"):
            await service.reset_deck_progress(1)

        assert await service.get_known_card_ids(1) == frozenset()
        assert await store.get_daily_stats(1) == []
        audit = [r for r in caplog.records if r.name == "memo.audit"]
        assert len(audit) == 1
        assert "deckId=1" in audit[0].getMessage()
        assert "Spanish verbs" in audit[0].getMessage()
        assert "clearedCards=2" in audit[0].getMessage()

    @pytest.mark.asyncio
    async def test_reset_other_deck_untouched(self, clock, invalidator):
        store = InMemoryProgressStore()
        service = StatsService(store, clock, invalidator)
        await service.set_card_known(1, 1, True)
        await service.set_card_known(2, 1, True)

        await service.reset_deck_progress(1)

        assert await service.get_known_card_ids(2) == frozenset({1})
