"""In-process TTL cache of resolved user permissions."""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ....config.constants import CacheKeys, CacheTTL
from ..entities.resolved import UserPermission

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Resolved permission list plus its absolute expiry instant."""

    permissions: List[UserPermission]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class PermissionCache:
    """
    Time-bounded cache of a user's resolved permissions.

    Entries expire ``ttl_seconds`` after insertion and are evicted lazily on
    read; there is no background sweep. When ``max_entries`` is set the least
    recently used entry is evicted on overflow. Operations never suspend and
    are guarded by a lock.

    Every invalidation advances a generation counter. A resolver reads
    ``generation(user_id)`` before it starts computing and stores the result
    with ``put_if_current``, which drops the write if the user (or the whole
    cache) was invalidated in between.
    """

    def __init__(
        self,
        ttl_seconds: float = CacheTTL.PERMISSIONS,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got: {ttl_seconds}")
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive or None, got: {max_entries}")

        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._epoch = 0
        self._generations: Dict[str, int] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @staticmethod
    def key_for(user_id: str) -> str:
        return CacheKeys.USER_PERMISSIONS.format(user_id=user_id)

    def get(self, user_id: str) -> Optional[List[UserPermission]]:
        """Cached permissions of a user, or None on miss or expiry."""
        key = self.key_for(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return list(entry.permissions)

    def generation(self, user_id: str) -> Tuple[int, int]:
        """Opaque token that changes whenever ``user_id`` is invalidated."""
        with self._lock:
            return self._epoch, self._generations.get(user_id, 0)

    def put(self, user_id: str, permissions: List[UserPermission]) -> None:
        """Store permissions for a user with a fresh expiry."""
        with self._lock:
            self._store(user_id, permissions)

    def _store(self, user_id: str, permissions: List[UserPermission]) -> None:
        key = self.key_for(user_id)
        self._entries[key] = CacheEntry(
            permissions=list(permissions),
            expires_at=self._clock() + self._ttl_seconds,
        )
        self._entries.move_to_end(key)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted least recently used entry {evicted}")

    def put_if_current(self, user_id: str, generation: Tuple[int, int], permissions: List[UserPermission]) -> bool:
        """Store permissions only if no invalidation happened since ``generation`` was read.

        Returns:
            True if stored, False if the result was stale and dropped
        """
        with self._lock:
            current = (self._epoch, self._generations.get(user_id, 0))
            if current != generation:
                logger.debug(f"Dropped stale permissions for user {user_id}")
                return False
            self._store(user_id, permissions)
            return True

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one user's entry, or every entry when ``user_id`` is None."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
                self._generations.clear()
                self._epoch += 1
                logger.debug("Invalidated all cached permissions")
                return
            self._entries.pop(self.key_for(user_id), None)
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
        logger.debug(f"Invalidated cached permissions for user {user_id}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Hit/miss counters and current size."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": (self._hits / total) if total else 0.0,
                "size": len(self._entries),
                "evictions": self._evictions,
                "ttl_seconds": self._ttl_seconds,
                "max_entries": self._max_entries,
            }
