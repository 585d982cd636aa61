"""
Process-wide TTL cache for incident queries.

Entries are keyed by the filter tuple of a request. Expired entries are
not evicted by a timer: each ``get`` rolls a die and, with a small
probability, sweeps every expired entry. Under low traffic stale entries
can therefore linger in memory (they are never served once expired).
"""
import logging
import random
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

import config

logger = logging.getLogger(__name__)


class QueryCache:
    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        sweep_probability: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        settings = config.get_query_cache_config()
        self.ttl_seconds = settings["ttl_seconds"] if ttl_seconds is None else ttl_seconds
        self.sweep_probability = (
            settings["sweep_probability"] if sweep_probability is None else sweep_probability
        )
        self._clock = clock
        self._rng = rng
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value for ``key`` or None when missing or expired."""
        now = self._clock()
        with self._lock:
            if self._rng() < self.sweep_probability:
                self._sweep(now)
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if now - stored_at >= self.ttl_seconds:
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep(self, now: float) -> None:
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Swept {len(expired)} expired query cache entries")
