from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Optional, Union


class QueryKind(str, Enum):
    list = "list"
    total = "total"


@dataclass(frozen=True)
class CacheKey:
    kind: QueryKind
    category: str
    month: int
    year: int

    @classmethod
    def pair(cls, category: Optional[str], month: int, year: int) -> tuple[CacheKey, CacheKey]:
        """Keys for the (list, total) halves of one expense listing."""
        category = category or ""
        return (
            cls(QueryKind.list, category, month, year),
            cls(QueryKind.total, category, month, year),
        )


@dataclass
class _Entry:
    value: Any
    expires_at: float


class QueryCache:
    """Thread-safe read-through memo with per-entry TTL.

    Expired entries are dropped lazily on ``get`` and in bulk by
    ``delete_expired``. ``flush_all`` empties the cache; writers call it
    before touching the ledger.
    """

    def __init__(
        self,
        default_ttl: Union[float, timedelta] = 3600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = _seconds(default_ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, _Entry] = {}

    def get(self, key: CacheKey) -> tuple[Any, bool]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            if entry.expires_at <= now:
                del self._entries[key]
                return None, False
            return entry.value, True

    def set(
        self,
        key: CacheKey,
        value: Any,
        ttl: Union[float, timedelta, None] = None,
    ) -> None:
        seconds = self.default_ttl if ttl is None else _seconds(ttl)
        entry = _Entry(value=value, expires_at=self._clock() + seconds)
        with self._lock:
            self._entries[key] = entry

    def flush_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def delete_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _seconds(ttl: Union[float, timedelta]) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)
