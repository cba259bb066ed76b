import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 3600


@dataclass(eq=False)
class CacheEntry:
    """Compressed results of one iterator instance, keyed by item fingerprint."""

    expiry_timestamp: float
    snapshot: str | None = None
    cache: dict[str, str] = field(default_factory=dict)

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )


class ResultCache:
    """
    In-memory store of cache entries, one per iterator instance.

    Entries returned by `get_or_create` are only visible to later invocations once
    they are committed. Entries expire `ttl` seconds after their creation and are
    dropped by `sweep_expired`.
    """

    def __init__(
        self, ttl: float = DEFAULT_TTL, clock: "Callable[[], float]" = time.time
    ) -> None:
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, instance_key: str) -> bool:
        return instance_key in self._entries

    def get_or_create(self, instance_key: str) -> CacheEntry:
        if entry := self._entries.get(instance_key):
            return entry

        return CacheEntry(expiry_timestamp=self.clock() + self.ttl)

    def reconcile(self, entry: CacheEntry, snapshot: str) -> None:
        """Drop every cached result if the subgraph changed since the last run."""
        with entry._lock:
            if entry.snapshot == snapshot:
                return

            if entry.snapshot is not None:
                logger.info(
                    "Subgraph changed, invalidating cached results",
                    dropped=len(entry.cache),
                )

            entry.cache.clear()
            entry.snapshot = snapshot

    def lookup(self, entry: CacheEntry, fingerprint: str) -> str | None:
        with entry._lock:
            return entry.cache.get(fingerprint)

    def store(self, entry: CacheEntry, fingerprint: str, compressed: str) -> None:
        with entry._lock:
            entry.cache[fingerprint] = compressed

    def commit(self, instance_key: str, entry: CacheEntry) -> None:
        self._entries[instance_key] = entry

    def invalidate(self, instance_key: str) -> None:
        self._entries.pop(instance_key, None)

    def clear(self) -> None:
        self._entries.clear()

    def sweep_expired(self, now: float | None = None) -> list[str]:
        """Remove entries whose expiry is in the past, returning their keys."""
        if now is None:
            now = self.clock()

        expired = [
            key
            for key, entry in self._entries.items()
            if entry.expiry_timestamp < now
        ]
        for key in expired:
            del self._entries[key]
            logger.debug("Removed expired cache entry", instance_key=key)

        return expired
