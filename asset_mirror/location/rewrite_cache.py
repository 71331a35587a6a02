"""
Rewrite Cache — Memoized identifier rewrites for one activation epoch.

Every entry belongs to the epoch the cache is currently stamped with.
Readers pass the epoch of the activation snapshot they are working
from; a mismatch is a miss on read and a dropped write on store. That
makes `begin_epoch` a full barrier: once it returns, no result computed
against an older mirror can land in, or be served from, the cache.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Hashable, Optional


class IdRewriteCache:
    """Thread-safe handle → rewritten-id cache with epoch stamping."""

    def __init__(self):
        self._entries: Dict[Hashable, str] = {}
        self._epoch = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.stale_writes_dropped = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    def get(self, handle: Hashable, epoch: int) -> Optional[str]:
        with self._lock:
            if epoch != self._epoch:
                self.misses += 1
                return None
            value = self._entries.get(handle)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def store(self, handle: Hashable, value: str, epoch: int) -> bool:
        """Store a rewrite; returns False if the epoch has moved on."""
        with self._lock:
            if epoch != self._epoch:
                self.stale_writes_dropped += 1
                return False
            self._entries[handle] = value
            return True

    def begin_epoch(self, epoch: int) -> int:
        """Drop every entry and stamp the cache with `epoch`."""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._epoch = epoch
            return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "epoch": self._epoch,
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "stale_writes_dropped": self.stale_writes_dropped,
            }
