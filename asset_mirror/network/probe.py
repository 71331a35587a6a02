"""
Endpoint Probe — One timeout-bounded reachability check.

Issues a streamed GET and stops at the response headers, so the probe
measures connect + first byte rather than transfer. Any failure
(timeout, refused connection, DNS, invalid URL, HTTP >= 400) becomes a
ProbeResult with success=False; nothing but cancellation escapes.

## Usage

    from asset_mirror.network.probe import EndpointProbe

    probe = EndpointProbe()
    result = await probe.probe("https://cdn-a.example.com/ping", timeout=5)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional

import httpx

from ..models.mirror import ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "asset-mirror/1.0",
    "Cache-Control": "no-cache",
}


class EndpointProbe:
    """
    Reachability/latency probe using httpx.

    A fresh client is opened per probe so every round measures a cold
    connection instead of reusing a pooled one from the previous round.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self._transport = transport
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}

    async def __call__(self, url: str, timeout: float) -> ProbeResult:
        return await self.probe(url, timeout)

    async def probe(self, url: str, timeout: float) -> ProbeResult:
        """Probe a single URL. Never raises except on cancellation."""
        started = time.perf_counter()
        try:
            status_code = await asyncio.wait_for(self._request(url, timeout), timeout)
        except asyncio.TimeoutError:
            elapsed = time.perf_counter() - started
            logger.warning(f"Probe {url} timed out after {timeout}s", extra={"probe_url": url})
            return ProbeResult(url=url, success=False, elapsed=elapsed, error="timeout")
        except httpx.HTTPError as e:
            elapsed = time.perf_counter() - started
            logger.warning(f"Probe {url} failed: {e.__class__.__name__}: {e}", extra={"probe_url": url})
            return ProbeResult(url=url, success=False, elapsed=elapsed, error=str(e) or e.__class__.__name__)
        except Exception as e:
            # httpx.InvalidURL and friends are not HTTPError subclasses
            elapsed = time.perf_counter() - started
            logger.warning(f"Probe {url} rejected: {e}", extra={"probe_url": url})
            return ProbeResult(url=url, success=False, elapsed=elapsed, error=str(e) or e.__class__.__name__)

        elapsed = time.perf_counter() - started
        if status_code >= 400:
            logger.warning(f"Probe {url} returned HTTP {status_code}", extra={"probe_url": url})
            return ProbeResult(
                url=url,
                success=False,
                elapsed=elapsed,
                status_code=status_code,
                error=f"http_{status_code}",
            )

        logger.debug(f"Probe {url}: {status_code} in {elapsed * 1000:.1f}ms")
        return ProbeResult(url=url, success=True, elapsed=elapsed, status_code=status_code)

    async def _request(self, url: str, timeout: float) -> int:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=timeout,
            follow_redirects=True,
            headers=self._headers,
        ) as client:
            async with client.stream("GET", url) as response:
                return response.status_code
