"""
SQL Progress Store: Infrastructure adapter for a relational database.

Implements ProgressStore with SQLAlchemy Core. Daily counters are accumulated
with INSERT .. ON CONFLICT DO UPDATE (col = col + excluded.col), so concurrent
sessions on the same deck and day add up inside the database instead of
racing a read-modify-write. Supported dialects: sqlite and postgresql.
"""

import logging
from collections.abc import Collection, Iterator
from contextlib import contextmanager
from datetime import date

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    and_,
    case,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from memo.domain.errors import InvalidArgumentError, StoreUnavailableError
from memo.domain.stats.models import DailyStatsRecord, DeckAggregate
from memo.domain.stats.ports import ProgressStore
from memo.domain.validation import (
    require_positive_id,
    require_positive_ids,
    require_present,
    validate_session_counters,
)

logger = logging.getLogger(__name__)

metadata = MetaData()

deck_daily_stats = Table(
    "deck_daily_stats",
    metadata,
    Column("deck_id", BigInteger, nullable=False),
    Column("date", Date, nullable=False),
    Column("sessions", Integer, nullable=False, default=0),
    Column("viewed", Integer, nullable=False, default=0),
    Column("correct", Integer, nullable=False, default=0),
    Column("hard", Integer, nullable=False, default=0),
    Column("total_duration_ms", BigInteger, nullable=False, default=0),
    Column("total_delay_ms", BigInteger, nullable=False, default=0),
    PrimaryKeyConstraint("deck_id", "date", name="pk_deck_daily_stats"),
    CheckConstraint("correct <= viewed", name="ck_daily_correct_le_viewed"),
    CheckConstraint("hard <= viewed", name="ck_daily_hard_le_viewed"),
)

known_cards = Table(
    "known_cards",
    metadata,
    Column("deck_id", BigInteger, nullable=False),
    Column("card_id", BigInteger, nullable=False),
    PrimaryKeyConstraint("deck_id", "card_id", name="pk_known_cards"),
)

_COUNTER_COLUMNS = ("sessions", "viewed", "correct", "hard", "total_duration_ms", "total_delay_ms")


class SqlProgressStore(ProgressStore):
    """
    Progress store backed by two tables: deck_daily_stats and known_cards.

    Each write runs in a single transaction; any SQLAlchemyError is raised as
    StoreUnavailableError with the original chained.
    """

    def __init__(self, engine: Engine):
        dialect = engine.dialect.name
        if dialect not in ("sqlite", "postgresql"):
            raise InvalidArgumentError(f"Unsupported database dialect: {dialect}")
        self.engine = engine
        self._dialect = dialect

    @classmethod
    def from_url(cls, database_url: str, create_schema: bool = True) -> "SqlProgressStore":
        """Build a store from a database URL, creating the tables if asked."""
        kwargs = {}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every checkout sees an empty database
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        try:
            engine = create_engine(database_url, **kwargs)
        except ArgumentError as e:
            raise InvalidArgumentError(f"Invalid database URL: {database_url}") from e
        store = cls(engine)
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        with self._guard("create schema"):
            metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Known cards
    # ------------------------------------------------------------------
    async def get_known_card_ids(self, deck_id: int) -> frozenset[int]:
        require_positive_id("deck_id", deck_id)
        query = select(known_cards.c.card_id).where(known_cards.c.deck_id == deck_id)
        with self._guard("read known cards"), self.engine.connect() as conn:
            return frozenset(conn.execute(query).scalars())

    async def get_known_card_ids_batch(
        self, deck_ids: Collection[int]
    ) -> dict[int, frozenset[int]]:
        ids = require_positive_ids("deck_ids", deck_ids)
        if not ids:
            return {}
        query = select(known_cards.c.deck_id, known_cards.c.card_id).where(
            known_cards.c.deck_id.in_(ids)
        )
        grouped: dict[int, set[int]] = {deck_id: set() for deck_id in ids}
        with self._guard("batch read known cards"), self.engine.connect() as conn:
            for deck_id, card_id in conn.execute(query):
                grouped[deck_id].add(card_id)
        return {deck_id: frozenset(cards) for deck_id, cards in grouped.items()}

    async def is_card_known(self, deck_id: int, card_id: int) -> bool:
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        query = select(known_cards.c.card_id).where(
            and_(known_cards.c.deck_id == deck_id, known_cards.c.card_id == card_id)
        )
        with self._guard("check known card"), self.engine.connect() as conn:
            return conn.execute(query).first() is not None

    async def set_card_known(self, deck_id: int, card_id: int, known: bool) -> None:
        require_positive_id("deck_id", deck_id)
        require_positive_id("card_id", card_id)
        if known:
            stmt = (
                self._insert(known_cards)
                .values(deck_id=deck_id, card_id=card_id)
                .on_conflict_do_nothing(index_elements=["deck_id", "card_id"])
            )
        else:
            stmt = delete(known_cards).where(
                and_(known_cards.c.deck_id == deck_id, known_cards.c.card_id == card_id)
            )
        with self._guard("set known card"), self.engine.begin() as conn:
            conn.execute(stmt)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    async def append_session(
        self,
        deck_id: int,
        day: date,
        viewed: int,
        correct: int,
        hard: int,
        duration_ms: int,
        answer_delay_ms: int,
        known_card_ids_delta: Collection[int],
    ) -> None:
        require_positive_id("deck_id", deck_id)
        require_present("day", day)
        validate_session_counters(viewed, correct, hard, duration_ms, answer_delay_ms)
        delta = list(dict.fromkeys(require_positive_ids("known_card_ids_delta", known_card_ids_delta or ())))
        if viewed <= 0:
            logger.debug(f"Ignoring session without viewed cards for deckId={deck_id}")
            return

        insert_row = self._insert(deck_daily_stats).values(
            deck_id=deck_id,
            date=day,
            sessions=1,
            viewed=viewed,
            correct=correct,
            hard=hard,
            total_duration_ms=duration_ms,
            total_delay_ms=answer_delay_ms,
        )
        upsert = insert_row.on_conflict_do_update(
            index_elements=["deck_id", "date"],
            set_={
                name: deck_daily_stats.c[name] + insert_row.excluded[name]
                for name in _COUNTER_COLUMNS
            },
        )

        with self._guard("append session"), self.engine.begin() as conn:
            conn.execute(upsert)
            if delta:
                conn.execute(
                    self._insert(known_cards)
                    .values([{"deck_id": deck_id, "card_id": card_id} for card_id in delta])
                    .on_conflict_do_nothing(index_elements=["deck_id", "card_id"])
                )

    async def reset_deck_progress(self, deck_id: int) -> None:
        require_positive_id("deck_id", deck_id)
        with self._guard("reset deck progress"), self.engine.begin() as conn:
            conn.execute(delete(deck_daily_stats).where(deck_daily_stats.c.deck_id == deck_id))
            conn.execute(delete(known_cards).where(known_cards.c.deck_id == deck_id))

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    async def get_daily_stats(self, deck_id: int) -> list[DailyStatsRecord]:
        require_positive_id("deck_id", deck_id)
        c = deck_daily_stats.c
        query = select(deck_daily_stats).where(c.deck_id == deck_id).order_by(c.date.asc())
        with self._guard("read daily stats"), self.engine.connect() as conn:
            return [
                DailyStatsRecord(
                    date=row.date,
                    sessions=row.sessions,
                    viewed=row.viewed,
                    correct=row.correct,
                    hard=row.hard,
                    total_duration_ms=row.total_duration_ms,
                    total_answer_delay_ms=row.total_delay_ms,
                )
                for row in conn.execute(query)
            ]

    async def get_aggregates_for_decks(
        self, deck_ids: Collection[int], today: date
    ) -> dict[int, DeckAggregate]:
        ids = require_positive_ids("deck_ids", deck_ids)
        require_present("today", today)
        if not ids:
            return {}

        c = deck_daily_stats.c

        def total(column):
            return func.coalesce(func.sum(column), 0)

        def today_only(column):
            return func.coalesce(func.sum(case((c.date == today, column), else_=0)), 0)

        query = (
            select(
                c.deck_id,
                total(c.sessions),
                total(c.viewed),
                total(c.correct),
                total(c.hard),
                today_only(c.sessions),
                today_only(c.viewed),
                today_only(c.correct),
                today_only(c.hard),
            )
            .where(c.deck_id.in_(ids))
            .group_by(c.deck_id)
        )

        result = {deck_id: DeckAggregate() for deck_id in ids}
        with self._guard("read aggregates"), self.engine.connect() as conn:
            for row in conn.execute(query):
                result[row[0]] = DeckAggregate(*(int(v) for v in row[1:]))
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _insert(self, table: Table):
        if self._dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        return insert(table)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Progress store failed to {operation}: {e}")
            raise StoreUnavailableError(f"Progress store unavailable ({operation})") from e
