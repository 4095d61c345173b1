"""
Generic keyed read cache with TTL, size bound, version tokens and debounced
invalidation.

Every mutation of the entry table happens under one lock, so a reader sees
either the state before an invalidation or the state after it.

Version tokens close the read-through race: a caller takes `version(key)`
before loading, and `put(key, value, version=token)` is discarded if the
key's scope was invalidated while the load was running.

Debounced invalidation (`request_invalidation`) clears a scope on the first
request and only counts further requests that arrive within the debounce
window. A skipped request still leaves a stale mark, so entries cached before
it are dropped on their next read instead of being served.
"""

import logging
import threading
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Miss:
    _instance: "_Miss | None" = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass(frozen=True)
class CacheStats:
    """Counters for spotting a thrashing cache or a misjudged debounce window."""

    hits: int
    misses: int
    size: int
    skipped_invalidations: int = 0
    evictions: int = 0
    stale_puts: int = 0
    tracked_scopes: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


@dataclass
class _Entry(Generic[V]):
    value: V
    cached_at: float
    seq: int


@dataclass(frozen=True)
class _StaleMark:
    seq: int
    predicate: Callable[[Any], bool] | None


class KeyedCache(Generic[K, V]):
    """
    Thread-safe key/value cache.

    Args:
        name: Used in log lines and stats reports.
        ttl_seconds: Entry lifetime; None keeps entries until invalidated.
        max_size: Entry bound; the oldest entry is evicted when full.
        debounce_seconds: Window for request_invalidation.
        scope_of: Maps a key to its invalidation scope (e.g. the deck id of a
            composite key). Defaults to the key itself.
        max_tracked_scopes: Bound on the per-scope bookkeeping; beyond it the
            versions of scopes without cached entries are forgotten.
        time_source: Monotonic seconds; injectable for tests.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float | None = None,
        max_size: int | None = None,
        debounce_seconds: float = 0.0,
        scope_of: Callable[[K], Hashable] | None = None,
        time_source: Callable[[], float] = time.monotonic,
        max_tracked_scopes: int = 1024,
    ):
        if max_size is not None and max_size <= 0:
            raise ValueError(f"max_size must be positive, got: {max_size}")
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.debounce_seconds = debounce_seconds
        self._scope_of: Callable[[K], Hashable] = scope_of or (lambda key: key)
        self._now = time_source
        self.max_tracked_scopes = max_tracked_scopes

        self._lock = threading.RLock()
        self._entries: dict[K, _Entry[V]] = {}
        self._epoch = 0
        self._scope_versions: dict[Hashable, int] = {}
        self._version_counter = 0
        self._version_floor = 0
        self._last_invalidation: dict[Hashable, float] = {}
        self._stale_marks: dict[Hashable, list[_StaleMark]] = {}
        self._seq = 0

        self._hits = 0
        self._misses = 0
        self._skipped_invalidations = 0
        self._evictions = 0
        self._stale_puts = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, key: K) -> V:
        """Return the cached value or MISS."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._is_live(key, entry):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                logger.debug(f"{self.name} cache MISS: key={key!r}")
                return MISS

            self._hits += 1
            logger.debug(f"{self.name} cache HIT: key={key!r}")
            return entry.value

    async def get_or_load_async(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        value = self.get(key)
        if value is not MISS:
            return value
        token = self.version(key)
        value = await loader()
        self.put(key, value, version=token)
        return value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and self._is_live(key, entry)  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def version(self, key: K) -> tuple[int, int]:
        """Token to pass to put() after loading the value for key."""
        with self._lock:
            return (
                self._epoch,
                self._scope_versions.get(self._scope_of(key), self._version_floor),
            )

    def put(self, key: K, value: V, version: tuple[int, int] | None = None) -> bool:
        """
        Store a value.

        Returns:
            False when the version token is outdated and the value was discarded.
        """
        with self._lock:
            if version is not None and version != self.version(key):
                self._stale_puts += 1
                logger.debug(f"{self.name} cache discarded stale value for key={key!r}")
                return False

            if (
                self.max_size is not None
                and key not in self._entries
                and len(self._entries) >= self.max_size
            ):
                self._evict_oldest()

            self._seq += 1
            self._entries[key] = _Entry(value=value, cached_at=self._now(), seq=self._seq)
            return True

    def invalidate(self, key: K) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            self._bump(self._scope_of(key))
        if removed:
            logger.debug(f"{self.name} cache invalidated key={key!r}")
        return removed

    def invalidate_scope(
        self, scope: Hashable, predicate: Callable[[K], bool] | None = None
    ) -> int:
        """Drop every entry of a scope (optionally only those matching predicate)."""
        with self._lock:
            doomed = [
                key
                for key in self._entries
                if self._scope_of(key) == scope and (predicate is None or predicate(key))
            ]
            for key in doomed:
                del self._entries[key]
            self._bump(scope)
            marks = self._stale_marks.get(scope)
            if marks:
                kept = [m for m in marks if predicate is not None and m.predicate is not predicate]
                if kept:
                    self._stale_marks[scope] = kept
                else:
                    del self._stale_marks[scope]
        if doomed:
            logger.debug(f"{self.name} cache invalidated scope={scope!r}: {len(doomed)} entries removed")
        return len(doomed)

    def invalidate_where(self, predicate: Callable[[K], bool]) -> int:
        """
        Drop every cached entry matching predicate.

        Any key may match, including ones still being loaded, so every load in
        flight is outdated.
        """
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
            self._epoch += 1
        return len(doomed)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stale_marks.clear()
            self._epoch += 1
        logger.debug(f"{self.name} cache cleared")

    def request_invalidation(
        self, scope: Hashable, predicate: Callable[[K], bool] | None = None
    ) -> bool:
        """
        Debounced scope invalidation.

        Returns:
            True if the scope was cleared now, False if the request fell inside
            the debounce window of the previous clear and was collapsed into it.
        """
        with self._lock:
            now = self._now()
            self._last_invalidation = {
                s: at for s, at in self._last_invalidation.items() if now - at < self.debounce_seconds
            }
            last = self._last_invalidation.get(scope)
            if last is not None and now - last < self.debounce_seconds:
                self._skipped_invalidations += 1
                self._seq += 1
                # a newer mark with the same predicate subsumes older ones
                marks = [m for m in self._stale_marks.get(scope, ()) if m.predicate is not predicate]
                marks.append(_StaleMark(seq=self._seq, predicate=predicate))
                self._stale_marks[scope] = marks
                self._bump(scope)
                logger.debug(f"{self.name} cache invalidation skipped (cooldown): scope={scope!r}")
                return False

            self.invalidate_scope(scope, predicate)
            self._last_invalidation[scope] = now
            return True

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------
    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                skipped_invalidations=self._skipped_invalidations,
                evictions=self._evictions,
                stale_puts=self._stale_puts,
                tracked_scopes=len(self._scope_versions.keys() | self._last_invalidation.keys()),
            )

    def log_stats(self) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        stats = self.stats()
        total = stats.hits + stats.misses
        hit_rate = f"{stats.hit_rate * 100:.1f}%" if total > 0 else "N/A"
        logger.debug(
            f"{self.name} cache stats: hits={stats.hits}, misses={stats.misses}, "
            f"hitRate={hit_rate}, size={stats.size}, maxSize={self.max_size}, "
            f"skippedInvalidations={stats.skipped_invalidations}, evictions={stats.evictions}"
        )

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------
    def _is_live(self, key: K, entry: _Entry[V]) -> bool:
        if self.ttl_seconds is not None and self._now() - entry.cached_at >= self.ttl_seconds:
            return False
        for mark in self._stale_marks.get(self._scope_of(key), ()):
            if entry.seq < mark.seq and (mark.predicate is None or mark.predicate(key)):
                return False
        return True

    def _bump(self, scope: Hashable) -> None:
        self._version_counter += 1
        self._scope_versions[scope] = self._version_counter
        if len(self._scope_versions) > self.max_tracked_scopes:
            self._forget_idle_scopes()

    def _forget_idle_scopes(self) -> None:
        # a forgotten scope reads as the floor, the newest version handed out,
        # so no token taken before one of its invalidations can match again
        busy = {self._scope_of(key) for key in self._entries} | self._last_invalidation.keys()
        idle = [scope for scope in self._scope_versions if scope not in busy]
        for scope in idle:
            del self._scope_versions[scope]
            self._stale_marks.pop(scope, None)
        if idle:
            self._version_floor = self._version_counter
            logger.debug(f"{self.name} cache forgot {len(idle)} idle scopes")

    def _evict_oldest(self) -> None:
        oldest = min(self._entries.items(), key=lambda item: item[1].cached_at)[0]
        del self._entries[oldest]
        self._evictions += 1
        logger.debug(f"{self.name} cache eviction: removed oldest entry for key={oldest!r}")
