import pytest

from memo.domain.errors import InvalidArgumentError
from memo.domain.models import Deck, FilterOption, Flashcard


class TestCardQueries:
    @pytest.mark.asyncio
    async def test_counts_by_filter(self, engine):
        await engine.stats.set_card_known(1, 1, True)
        await engine.stats.set_card_known(1, 2, True)

        assert await engine.cards.count_cards(1) == 5
        assert await engine.cards.count_cards(1, filter_option=FilterOption.KNOWN_ONLY) == 2
        assert await engine.cards.count_cards(1, filter_option=FilterOption.UNKNOWN_ONLY) == 3

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, engine):
        assert await engine.cards.count_cards(1, "FRONT 3") == 1
        assert await engine.cards.count_cards(2, "  front 10 ") == 3
        assert await engine.cards.count_cards(1, "nothing like it") == 0

    @pytest.mark.asyncio
    async def test_search_covers_example(self, engine, flashcards):
        flashcards.cards.append(
            Flashcard(id=6, deck_id=1, front_text="ir", back_text="to go", example="Voy a casa")
        )
        assert await engine.cards.count_cards(1, "casa") == 1

    @pytest.mark.asyncio
    async def test_counts_are_cached(self, engine, flashcards):
        await engine.cards.count_cards(1)
        calls = flashcards.calls
        await engine.cards.count_cards(1)
        assert flashcards.calls == calls

    @pytest.mark.asyncio
    async def test_status_counts_follow_progress_changes(self, engine):
        known_only = FilterOption.KNOWN_ONLY
        assert await engine.cards.count_cards(1, filter_option=known_only) == 0

        await engine.stats.set_card_known(1, 1, True)
        assert await engine.cards.count_cards(1, filter_option=known_only) == 1

        # second change lands inside the debounce window
        await engine.stats.set_card_known(1, 2, True)
        assert await engine.cards.count_cards(1, filter_option=known_only) == 2

    @pytest.mark.asyncio
    async def test_deck_modification_refreshes_counts(self, engine, flashcards):
        assert await engine.cards.count_cards(1) == 5
        flashcards.cards.append(Flashcard(id=6, deck_id=1, front_text="f", back_text="b"))
        assert await engine.cards.count_cards(1) == 5

        engine.decks.notify_deck_modified(1, 7)
        assert await engine.cards.count_cards(1) == 6

    @pytest.mark.asyncio
    async def test_paging(self, engine):
        page = await engine.cards.page_cards(1, page=1, page_size=2)
        assert [card.id for card in page.items] == [3, 4]
        assert (page.total, page.page_count) == (5, 3)

        last = await engine.cards.page_cards(1, page=2, page_size=2)
        assert [card.id for card in last.items] == [5]

        empty = await engine.cards.page_cards(1, search_query="zzz")
        assert (empty.items, empty.total, empty.page_count) == ([], 0, 0)

    @pytest.mark.asyncio
    async def test_paging_validation(self, engine):
        with pytest.raises(InvalidArgumentError):
            await engine.cards.page_cards(1, page=-1)
        with pytest.raises(InvalidArgumentError):
            await engine.cards.page_cards(1, page_size=0)
        with pytest.raises(InvalidArgumentError):
            await engine.cards.count_cards(0)


class TestDeckList:
    @pytest.mark.asyncio
    async def test_user_decks_are_cached(self, engine, decks):
        first = await engine.decks.list_user_decks(7)
        second = await engine.decks.list_user_decks(7)

        assert [deck.title for deck in first] == ["Spanish verbs", "Capitals"]
        assert first == second
        assert decks.calls == 1

    @pytest.mark.asyncio
    async def test_deck_change_refreshes_list(self, engine, decks):
        await engine.decks.list_user_decks(7)
        decks.decks.append(Deck(id=3, user_id=7, title="Numbers"))

        engine.decks.notify_deck_modified(3, 7)

        assert len(await engine.decks.list_user_decks(7)) == 3
        assert decks.calls == 2

    @pytest.mark.asyncio
    async def test_invalid_user(self, engine):
        with pytest.raises(InvalidArgumentError):
            await engine.decks.list_user_decks(0)
