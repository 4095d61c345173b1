"""Centralized constants for the memo practice engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Practice ----------
DEFAULT_SESSION_COUNT = 10
DEFAULT_RANDOM_ORDER = True

# ---------- Known cards cache ----------
KNOWN_CARDS_TTL_SECONDS = 300.0  # less volatile than deck lists
KNOWN_CARDS_MAX_SIZE = 2000

# ---------- Pagination count cache ----------
PAGINATION_COUNT_TTL_SECONDS = 30.0
PAGINATION_COUNT_MAX_SIZE = 500
PAGINATION_DEBOUNCE_SECONDS = 0.3

# ---------- User decks cache ----------
USER_DECKS_TTL_SECONDS = 60.0
USER_DECKS_MAX_SIZE = 1000

# ---------- Card grid ----------
DEFAULT_PAGE_SIZE = 50

# ---------- Logging ----------
AUDIT_LOGGER_NAME = "memo.audit"
