"""
Mock Adapters — Non-fetching collaborators for local mode and tests.

These log what would happen without touching the network.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from .base import ManifestHandle, ManifestLoader

logger = logging.getLogger(__name__)


class MockManifestLoader(ManifestLoader):
    """
    Manifest loader that records calls instead of fetching.

    URLs listed in `failing_urls` return None. A positive `delay`
    makes every load sleep first, which tests use to exercise timeouts
    and cancellation.
    """

    def __init__(self, failing_urls: Optional[Set[str]] = None, delay: float = 0.0):
        self.failing_urls: Set[str] = set(failing_urls or ())
        self.delay = delay
        self.initialize_calls = 0
        self.load_calls: List[str] = []
        self.purge_calls = 0

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        return True

    async def load_manifest_at(self, url: str) -> Optional[ManifestHandle]:
        self.load_calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if url in self.failing_urls:
            logger.info(f"[MOCK:manifest] Simulating failed load of {url}")
            return None
        logger.info(f"[MOCK:manifest] Would load manifest {url}")
        return ManifestHandle(url=url, content=b"{}")

    async def purge_local_cache(self) -> None:
        self.purge_calls += 1
        logger.info("[MOCK:manifest] Would purge local cache")
