# Domain Stats Package
from .models import DailyStatsRecord, DeckAggregate, SessionResult
from .ports import ProgressStore

__all__ = ["DailyStatsRecord", "DeckAggregate", "SessionResult", "ProgressStore"]
