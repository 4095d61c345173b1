# Domain Package
from .errors import (
    EmptySessionPoolError,
    InvalidArgumentError,
    MemoError,
    SessionAlreadyRecordedError,
    StoreUnavailableError,
)
from .models import Deck, FilterOption, Flashcard, PracticeDirection

__all__ = [
    "MemoError",
    "InvalidArgumentError",
    "StoreUnavailableError",
    "EmptySessionPoolError",
    "SessionAlreadyRecordedError",
    "Deck",
    "Flashcard",
    "FilterOption",
    "PracticeDirection",
]
