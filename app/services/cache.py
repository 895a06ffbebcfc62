"""
In-process TTL cache for analytics results.

One instance per application, created in app.main and handed to request
handlers through `get_analytics_cache`. Keys carry the full parameter tuple
so any filter change is a miss; `invalidate_organization` drops one
tenant's entries after its rollups are rebuilt. `run_periodic_cleanup`
runs for the life of the app and evicts entries nobody reads again.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float


def _param_default(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def make_key(method: str, organization_id: str, params: dict[str, Any]) -> str:
    encoded = json.dumps(params, sort_keys=True, default=_param_default)
    return f"{method}:{organization_id}:{encoded}"


class AnalyticsCache:
    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            logger.debug("Analytics cache hit: %s", key)
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + (ttl if ttl is not None else self.default_ttl)
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def invalidate_organization(self, organization_id: str) -> int:
        marker = f":{organization_id}:"
        with self._lock:
            doomed = [k for k in self._entries if marker in k]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info("Invalidated %d cached analytics entries for org %s", len(doomed), organization_id)
        return len(doomed)


async def run_periodic_cleanup(cache: AnalyticsCache, interval: float) -> None:
    """Evict expired entries every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = cache.cleanup()
        if removed:
            logger.debug("Analytics cache cleanup removed %d expired entries", removed)
