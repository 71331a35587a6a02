"""
Endpoint Racer — Pick the fastest-responding endpoint.

Each round probes every URL concurrently under one shared deadline.
The round only ends when every probe has settled: finished, failed, or
cancelled at the deadline. Rounds with no successes are not fatal; the
race keeps going until `tries` rounds have run.

The winner is the successful probe with the lowest elapsed time across
all rounds. Ties go to the URL listed first.

## Usage

    from asset_mirror.network.racer import EndpointRacer

    racer = EndpointRacer()
    result = await racer.select_fastest(["https://a/ping", "https://b/ping"], tries=3, timeout=5)
    if result.success:
        print(result.url)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from ..models.mirror import ProbeResult, SelectionResult
from ..observability.metrics import MetricsRegistry, metrics as default_metrics
from .probe import EndpointProbe

logger = logging.getLogger(__name__)

ProbeFn = Callable[[str, float], Awaitable[ProbeResult]]


class EndpointRacer:
    """Concurrent, timeout-bounded endpoint selection."""

    def __init__(
        self,
        probe: Optional[ProbeFn] = None,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self._probe: ProbeFn = probe or EndpointProbe()
        self._metrics = metrics or default_metrics

    async def select_fastest(
        self,
        urls: Sequence[str],
        tries: int = 3,
        timeout: float = 5.0,
    ) -> SelectionResult:
        """
        Race `urls` for up to `tries` rounds.

        Args:
            urls: Candidate URLs, in priority order (earlier wins ties)
            tries: Number of rounds; values below 1 are treated as 1
            timeout: Shared deadline for each round, in seconds

        Returns:
            SelectionResult; success=False if no probe ever succeeded
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        urls = list(urls)
        if not urls:
            self._metrics.increment("selections_total", labels={"result": "empty"})
            return SelectionResult(error="no endpoints")

        tries = max(1, int(tries))
        best: Optional[Tuple[float, int]] = None

        for round_no in range(1, tries + 1):
            results = await self._run_round(urls, timeout)
            successes = 0
            for index, result in enumerate(results):
                if not result.success:
                    continue
                successes += 1
                candidate = (result.elapsed, index)
                if best is None or candidate < best:
                    best = candidate

            logger.debug(f"Race round {round_no}/{tries}: {successes}/{len(urls)} endpoints answered")

        if best is None:
            logger.warning(f"No endpoint answered in {tries} round(s) across {len(urls)} URL(s)")
            self._metrics.increment("selections_total", labels={"result": "failed"})
            return SelectionResult(error=f"no endpoint answered after {tries} tries")

        elapsed, index = best
        logger.info(f"Fastest endpoint: {urls[index]} ({elapsed * 1000:.1f}ms)")
        self._metrics.increment("selections_total", labels={"result": "ok"})
        return SelectionResult(url=urls[index], success=True, elapsed=elapsed, index=index)

    async def _run_round(self, urls: List[str], timeout: float) -> List[ProbeResult]:
        """Probe every URL once; results are returned in input order."""
        tasks = [asyncio.ensure_future(self._probe(url, timeout)) for url in urls]
        try:
            done, pending = await asyncio.wait(tasks, timeout=timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for url, task in zip(urls, tasks):
            result = self._collect(url, task, task in done, timeout)
            self._metrics.increment("probes_total")
            if result.success:
                self._metrics.timing("probe_duration_seconds", result.elapsed)
            else:
                self._metrics.increment("probe_failures_total")
            results.append(result)
        return results

    @staticmethod
    def _collect(url: str, task: asyncio.Future, finished: bool, timeout: float) -> ProbeResult:
        if not finished or task.cancelled():
            return ProbeResult(url=url, success=False, elapsed=timeout, error="round deadline")

        error = task.exception()
        if error is not None:
            logger.warning(f"Probe for {url} raised {error.__class__.__name__}: {error}")
            return ProbeResult(url=url, success=False, elapsed=timeout, error=str(error))

        return task.result()
