"""
HTTP Manifest Loader — Fetch remote manifests with httpx.

Manifest bytes are kept opaque: they are written to a local cache
directory and handed back in a ManifestHandle. Parsing is the consumer's
business. A purge empties the cache directory except for the manifest
loaded last.

Each manifest host gets a circuit breaker, so a host that keeps failing
is skipped without a request until its reset timeout passes.

## Environment Variables

- ASSET_MIRROR_CACHE_DIR: local cache directory (default: state/manifest_cache)
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..observability.metrics import MetricsRegistry, metrics as default_metrics
from ..reliability.circuit_breaker import STATE_GAUGE_VALUES, CircuitBreakerRegistry
from .base import ManifestHandle, ManifestLoader

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path("state") / "manifest_cache"


class HttpManifestLoader(ManifestLoader):
    """Manifest loader backed by httpx and a local file cache."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        breakers: Optional[CircuitBreakerRegistry] = None,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.cache_dir = Path(cache_dir or os.environ.get("ASSET_MIRROR_CACHE_DIR") or DEFAULT_CACHE_DIR)
        self.timeout = timeout
        self._transport = transport
        self.breakers = breakers or CircuitBreakerRegistry()
        self._metrics = metrics or default_metrics
        self._initialized = False
        self._current: Optional[Path] = None  # survives purges

    async def initialize(self) -> bool:
        if self._initialized:
            return True
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create manifest cache {self.cache_dir}: {e}")
            return False
        self._initialized = True
        logger.debug(f"Manifest cache ready at {self.cache_dir}")
        return True

    async def load_manifest_at(self, url: str) -> Optional[ManifestHandle]:
        host = urlparse(url).netloc or url
        breaker = self.breakers.get(host)
        if not breaker.allow_request():
            self._report_breaker(host)
            return None

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "asset-mirror/1.0"},
            ) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Manifest fetch {url} failed: {e.__class__.__name__}: {e}")
            breaker.record_failure()
            self._report_breaker(host)
            return None

        if response.status_code >= 400:
            logger.warning(f"Manifest fetch {url} returned HTTP {response.status_code}")
            breaker.record_failure()
            self._report_breaker(host)
            return None

        breaker.record_success()
        self._report_breaker(host)

        content = response.content
        self._current = self._write_cache(url, content)
        logger.info(f"Fetched manifest {url} ({len(content)} bytes)")
        return ManifestHandle(url=url, content=content)

    async def purge_local_cache(self) -> None:
        if not self.cache_dir.exists():
            return
        removed = 0
        for entry in self.cache_dir.iterdir():
            if entry == self._current:
                continue
            try:
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove cached {entry.name}: {e}")
        logger.info(f"Purged {removed} cached item(s) from {self.cache_dir}")

    def cache_path_for(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"{digest}.manifest"

    def _write_cache(self, url: str, content: bytes) -> Optional[Path]:
        path = self.cache_path_for(url)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.warning(f"Could not cache manifest {url}: {e}")
            return None
        return path

    def _report_breaker(self, host: str) -> None:
        state = self.breakers.get(host).state
        self._metrics.set_gauge("circuit_breaker_state", STATE_GAUGE_VALUES[state], labels={"host": host})
