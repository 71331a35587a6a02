"""
Location Registry — Registered mirrors keyed by remote URL.

Keys are case-insensitive and iteration follows registration order,
which the rewrite scan relies on for a deterministic first match.
Disabled mirrors are never stored.

Removal listeners run under the registry lock *before* the entry is
deleted, so the activation controller can drop an active reference to
the mirror in the same critical section.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Union

from ..models.mirror import Mirror, mirror_key
from ..observability.metrics import MetricsRegistry, metrics as default_metrics

logger = logging.getLogger(__name__)

RemovalListener = Callable[[Mirror], None]


class LocationRegistry:
    """Thread-safe mapping of remote URL → Mirror."""

    def __init__(self, metrics: Optional[MetricsRegistry] = None):
        self._mirrors: Dict[str, Mirror] = {}
        self._lock = threading.RLock()
        self._removal_listeners: List[RemovalListener] = []
        self._metrics = metrics or default_metrics

    def add_removal_listener(self, listener: RemovalListener) -> None:
        with self._lock:
            self._removal_listeners.append(listener)

    @contextmanager
    def locked(self) -> Iterator["LocationRegistry"]:
        """Hold the registry lock across a compound operation."""
        with self._lock:
            yield self

    def register(self, mirror: Mirror) -> bool:
        """
        Add or replace a mirror.

        Returns False (and stores nothing) for disabled mirrors. A
        replaced entry keeps its original position.
        """
        if not mirror.enabled:
            logger.debug(f"Skipping disabled mirror {mirror.display_name}")
            return False

        with self._lock:
            replaced = mirror.key in self._mirrors
            self._mirrors[mirror.key] = mirror
            self._metrics.set_gauge("registered_mirrors", len(self._mirrors))

        logger.info(f"{'Updated' if replaced else 'Registered'} mirror {mirror.display_name} → {mirror.remote_url}")
        return True

    def remove(self, target: Union[str, Mirror]) -> bool:
        """Remove a mirror by remote URL or by descriptor."""
        remote_url = target.remote_url if isinstance(target, Mirror) else target
        key = mirror_key(remote_url)

        with self._lock:
            mirror = self._mirrors.get(key)
            if mirror is None:
                return False
            for listener in self._removal_listeners:
                listener(mirror)
            del self._mirrors[key]
            self._metrics.set_gauge("registered_mirrors", len(self._mirrors))

        logger.info(f"Removed mirror {mirror.display_name}")
        return True

    def lookup(self, remote_url: str) -> Optional[Mirror]:
        if not remote_url:
            return None
        with self._lock:
            return self._mirrors.get(mirror_key(remote_url))

    def snapshot(self) -> List[Mirror]:
        """Registered mirrors in registration order."""
        with self._lock:
            return list(self._mirrors.values())

    def as_dict(self) -> Dict[str, Mirror]:
        """Copy keyed by each mirror's remote URL as registered."""
        with self._lock:
            return {m.remote_url: m for m in self._mirrors.values()}

    def clear(self) -> None:
        with self._lock:
            self._mirrors.clear()
            self._metrics.set_gauge("registered_mirrors", 0)

    def __contains__(self, remote_url: object) -> bool:
        if isinstance(remote_url, Mirror):
            remote_url = remote_url.remote_url
        if not isinstance(remote_url, str):
            return False
        return self.lookup(remote_url) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._mirrors)

    def __iter__(self) -> Iterator[Mirror]:
        return iter(self.snapshot())
