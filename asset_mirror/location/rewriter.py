"""
Identifier Rewriter — The function consulted on every asset resolution.

Matching rule: registered mirrors are scanned in registration order and
the first one whose remote URL occurs in the raw identifier
(case-insensitive) wins. Every occurrence of that URL is replaced with
the active mirror's remote URL. Results, including "no match", are
cached per location handle for the current activation epoch.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Hashable, Optional, Pattern

from ..models.mirror import ActivationState
from ..observability.metrics import MetricsRegistry, metrics as default_metrics
from .controller import ActivationController
from .registry import LocationRegistry
from .rewrite_cache import IdRewriteCache

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _url_pattern(url: str) -> Pattern[str]:
    return re.compile(re.escape(url), re.IGNORECASE)


class IdRewriter:
    """Bypass check, cache lookup and registry scan for one identifier."""

    def __init__(
        self,
        registry: LocationRegistry,
        cache: IdRewriteCache,
        controller: ActivationController,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self._registry = registry
        self._cache = cache
        self._controller = controller
        self._metrics = metrics or default_metrics
        self._warned_unhashable = False

    def should_rewrite(self, state: ActivationState, raw_id: str) -> bool:
        """False when `raw_id` must be returned untouched without a cache lookup."""
        if not self._controller.globally_enabled:
            return False
        if not state.is_active or state.active_mirror is None:
            return False
        if not raw_id:
            return False
        return _url_pattern(state.active_url).search(raw_id) is None

    def transform(self, handle: Hashable, raw_id: str) -> str:
        state = self._controller.state
        if not self.should_rewrite(state, raw_id):
            return raw_id

        try:
            hash(handle)
        except TypeError:
            if not self._warned_unhashable:
                logger.debug(f"Unhashable location handle {type(handle).__name__}, rewriting uncached")
                self._warned_unhashable = True
            return self._rewrite(raw_id, state.active_url)

        cached = self._cache.get(handle, state.epoch)
        if cached is not None:
            self._metrics.increment("rewrite_cache_hits_total")
            return cached

        self._metrics.increment("rewrite_cache_misses_total")
        result = self._rewrite(raw_id, state.active_url)
        self._cache.store(handle, result, state.epoch)
        return result

    def _rewrite(self, raw_id: str, active_url: str) -> str:
        for mirror in self._registry.snapshot():
            if not mirror.enabled:
                continue
            pattern = _url_pattern(mirror.remote_url)
            if pattern.search(raw_id) is None:
                continue
            result = pattern.sub(lambda _: active_url, raw_id)
            logger.debug(f"Rewrote {raw_id} → {result} via {mirror.display_name}")
            return result
        return raw_id
