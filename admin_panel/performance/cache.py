"""
Ephemeral Cache

In-memory key/value store with an independent time-to-live per entry.

Values are stored as structural clones and handed back as fresh clones, so
neither the caller's original object nor a returned copy can ever alias the
stored entry. Expiry is a monotonic deadline checked lazily on every lookup
and size query; a single periodic sweep (owned by ``PerformanceContext``)
removes stale entries nobody reads any more.
"""

import threading
import time
from collections import Counter, OrderedDict, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set
from uuid import UUID

from admin_panel.monitoring.logging import get_logger
from admin_panel.monitoring.metrics import PerformanceMetricsCollector
from admin_panel.performance.exceptions import SerializationError

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0

_IMMUTABLE_TYPES = (
    type(None), bool, int, float, complex, str, bytes,
    Decimal, datetime, date, dt_time, timedelta, UUID, Enum,
)


_CONTAINER_TYPES = (dict, list, tuple, set, frozenset, OrderedDict, defaultdict, Counter)


def structural_clone(value: Any) -> Any:
    """
    Build an independent copy of ``value``.

    Immutable scalars are shared. Containers are rebuilt recursively with
    their own type: dict, list, tuple, set and frozenset, plus OrderedDict,
    defaultdict (keeping its ``default_factory``), Counter and namedtuples.
    Any other container subclass, or any other object, cannot be cloned
    without changing it and is rejected.

    Raises:
        SerializationError: for unsupported types or reference cycles
    """
    return _clone(value, '$', set())


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(type(value), '_fields') and hasattr(type(value), '_make')


def _clone(value: Any, path: str, active: Set[int]) -> Any:
    if isinstance(value, _IMMUTABLE_TYPES):
        return value

    value_type = type(value)
    if value_type not in _CONTAINER_TYPES and not _is_namedtuple(value):
        raise SerializationError(
            f"Cannot cache value of type {value_type.__name__} at {path}",
            value_type=value_type.__name__,
            path=path
        )

    marker = id(value)
    if marker in active:
        raise SerializationError(
            f"Cannot cache self-referencing structure at {path}",
            value_type=value_type.__name__,
            path=path
        )

    active.add(marker)
    try:
        if isinstance(value, dict):
            items = [
                (_clone(key, f'{path}.<key>', active), _clone(item, f'{path}.{key}', active))
                for key, item in value.items()
            ]
            mapping = dict(items)
            if value_type is dict:
                return mapping
            if value_type is defaultdict:
                return defaultdict(value.default_factory, mapping)
            return value_type(mapping)
        if value_type is list:
            return [_clone(item, f'{path}[{index}]', active) for index, item in enumerate(value)]
        if isinstance(value, tuple):
            items = [_clone(item, f'{path}[{index}]', active) for index, item in enumerate(value)]
            return value_type._make(items) if value_type is not tuple else tuple(items)
        return value_type(_clone(item, f'{path}{{}}', active) for item in value)
    finally:
        active.discard(marker)


@dataclass
class CacheEntry:
    """A stored value plus the monotonic timestamp and TTL that bound its life."""
    key: str
    value: Any
    created_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


class EphemeralCache:
    """
    TTL cache with lazy expiry and real hit/miss accounting.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[PerformanceMetricsCollector] = None
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")

        self.default_ttl = float(default_ttl)
        self._clock = clock
        self.metrics = metrics
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a clone of ``value`` under ``key``, replacing any previous entry.

        Args:
            key: Cache key
            value: Structurally clonable value
            ttl: Time-to-live in seconds, defaults to ``default_ttl``

        Raises:
            SerializationError: if ``value`` cannot be cloned; the cache is left untouched
            ValueError: if ``ttl`` is not positive
        """
        ttl = self.default_ttl if ttl is None else float(ttl)
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        stored = structural_clone(value)

        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=stored, created_at=self._clock(), ttl=ttl)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return a clone of the live value for ``key``.

        A stale entry is removed and reported as a miss even if no sweep has
        run yet.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                entry = None

            hit = entry is not None
            if hit:
                self._hits += 1
                value = structural_clone(entry.value)
            else:
                self._misses += 1

        if self.metrics is not None:
            self.metrics.record_cache_lookup(hit)

        return value if hit else default

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def sweep(self) -> int:
        """
        Remove every stale entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.debug("Cache sweep removed stale entries", removed=len(stale))
        return len(stale)

    def size(self) -> int:
        """Number of live entries; stale ones are swept first."""
        self.sweep()
        with self._lock:
            size = len(self._entries)

        if self.metrics is not None:
            self.metrics.update_cache_size(size)
        return size

    def clear(self) -> None:
        """Remove every entry. Safe to call repeatedly."""
        with self._lock:
            self._entries.clear()

    def hit_rate(self) -> Optional[float]:
        """Ratio of hits to lookups, None before the first lookup."""
        with self._lock:
            lookups = self._hits + self._misses
            return self._hits / lookups if lookups else None

    def stats(self) -> Dict[str, Any]:
        size = self.size()
        with self._lock:
            hits, misses = self._hits, self._misses
        lookups = hits + misses
        return {
            'size': size,
            'hits': hits,
            'misses': misses,
            'hit_rate': hits / lookups if lookups else None
        }

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        return self.size()


__all__ = [
    'DEFAULT_TTL_SECONDS',
    'CacheEntry',
    'EphemeralCache',
    'structural_clone'
]
