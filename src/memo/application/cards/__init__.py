# Application Cards Package
from .deck_service import DeckListService
from .query_service import CardQueryService, Page

__all__ = ["CardQueryService", "DeckListService", "Page"]
