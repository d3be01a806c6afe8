# -----------------------------------------------------------------------------
# File: ecocorr/utils/ttl_cache.py
"""
TTLCache: expiring key -> value store shared by every analyzer.

- TTL in milliseconds, entry visible while ``now - written <= ttl``
- Lazy expiry on lookup, optional periodic sweep task
- Optional size bound (oldest write evicted first)

One instance is created by the correlator and handed to each component;
there is no module-level cache.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

_LOG = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000


@dataclass
class CacheEntry:
    key: str
    value: Any
    written_at: float  # seconds, from the cache clock
    ttl_ms: int

    def is_fresh(self, now: float) -> bool:
        return (now - self.written_at) * 1000.0 <= self.ttl_ms


class TTLCache:
    """In-memory TTL cache. Not thread-safe; meant for a single event loop."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        max_size: Optional[int] = None,
        check_interval_ms: int = 60 * 1000,
        clock: Callable[[], float] = time.time,
    ):
        if ttl_ms < 0:
            raise ValueError("ttl_ms must be >= 0")
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive or None")
        self.ttl_ms = ttl_ms
        self.max_size = max_size
        self.check_interval_ms = check_interval_ms
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._cleanup_task: Optional[asyncio.Task] = None
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when unknown or stale (stale entries are dropped)."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> Any:
        if key in self._entries:
            del self._entries[key]
        elif self.max_size is not None and len(self._entries) >= self.max_size:
            self.purge_expired()
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                _LOG.debug("Cache full; evicted %s", evicted)
        self._entries[key] = CacheEntry(key, value, self._clock(), self.ttl_ms)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
            "ttl_ms": self.ttl_ms,
            "max_size": self.max_size,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.is_fresh(self._clock())

    # ------------------------------------------------------------------
    # Optional background sweep

    async def start(self) -> None:
        """Start the periodic sweep on the running loop."""
        if self._cleanup_task and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._periodic_cleanup())
        _LOG.info("TTLCache sweep started (every %sms)", self.check_interval_ms)

    async def stop(self) -> None:
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _periodic_cleanup(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.check_interval_ms / 1000.0)
                removed = self.purge_expired()
                if removed:
                    _LOG.debug("Cache cleanup: removed %s entries", removed)
            except asyncio.CancelledError:
                break
            except Exception as e:
                _LOG.exception("Cache cleanup failed: %s", e)
