# Infrastructure Stats Adapters Package
from .memory_store import InMemoryProgressStore
from .sql_store import SqlProgressStore

__all__ = ["InMemoryProgressStore", "SqlProgressStore"]
