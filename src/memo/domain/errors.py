"""
Error taxonomy for the practice engine.

Every error raised on purpose by memo derives from MemoError so callers at the
boundary (CLI, UI glue) can catch one type.
"""


class MemoError(Exception):
    """Base class for all memo errors."""


class InvalidArgumentError(MemoError, ValueError):
    """A non-positive id, missing required value or negative count.

    Raised before any side effect; retrying the same call cannot succeed.
    """


class StoreUnavailableError(MemoError):
    """The progress store's backing storage failed.

    Nothing was applied: a failed write leaves neither counters nor known
    cards behind, so the same call may be retried.
    """


class EmptySessionPoolError(MemoError):
    """There are no unknown cards left to practice in the deck."""

    def __init__(self, deck_id: int):
        super().__init__(f"No unknown cards to practice in deck {deck_id}")
        self.deck_id = deck_id


class SessionAlreadyRecordedError(MemoError):
    """A practice session was recorded once already."""

    def __init__(self, deck_id: int):
        super().__init__(f"Practice session for deck {deck_id} was already recorded")
        self.deck_id = deck_id
