"""
Domain models for learning progress statistics.

These are pure data structures with no I/O.
"""

from dataclasses import dataclass
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


@dataclass(frozen=True)
class DailyStatsRecord:
    """
    Accumulated practice counters for one deck on one day.

    Attributes:
        date: Calendar day (in the configured timezone).
        sessions: Completed sessions recorded that day.
        viewed: Cards viewed across those sessions.
        correct: Cards answered as known.
        hard: Cards marked hard. correct and hard are disjoint, so
            correct + hard <= viewed.
        total_duration_ms: Sum of session wall-clock durations.
        total_answer_delay_ms: Sum of question-to-reveal delays.
    """

    date: date
    sessions: int = 0
    viewed: int = 0
    correct: int = 0
    hard: int = 0
    total_duration_ms: int = 0
    total_answer_delay_ms: int = 0


@dataclass(frozen=True)
class DeckAggregate:
    """Roll-up of a deck's daily rows, over all days and for today only."""

    sessions_all: int = 0
    viewed_all: int = 0
    correct_all: int = 0
    hard_all: int = 0
    sessions_today: int = 0
    viewed_today: int = 0
    correct_today: int = 0
    hard_today: int = 0


class SessionResult(BaseModel):
    """
    Immutable tallies of one finished practice run.

    This is what gets written through the StatsAggregator. It is computed once
    per session, so a write that failed can be retried with the same object.
    """

    model_config = ConfigDict(frozen=True)

    deck_id: int = Field(gt=0)
    viewed: int = Field(ge=0)
    correct: int = Field(default=0, ge=0)
    hard: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    answer_delay_ms: int = Field(default=0, ge=0)
    known_card_ids_delta: tuple[int, ...] = ()

    @field_validator("known_card_ids_delta")
    @classmethod
    def positive_card_ids(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        for card_id in v:
            if card_id <= 0:
                raise ValueError(f"card ids must be positive, got: {card_id}")
        return v

    @model_validator(mode="after")
    def outcomes_within_viewed(self) -> "SessionResult":
        if self.correct + self.hard > self.viewed:
            raise ValueError(
                f"correct ({self.correct}) + hard ({self.hard}) exceeds viewed ({self.viewed})"
            )
        return self
