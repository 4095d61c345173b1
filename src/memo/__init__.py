"""memo: flashcard practice sessions, learning progress and read caches."""

from memo.consts import VERSION

__version__ = VERSION
