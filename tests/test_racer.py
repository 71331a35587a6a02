"""
Tests for EndpointRacer — concurrent rounds, deadlines and tie-breaks.
"""

import asyncio
import time

import pytest

from asset_mirror.models.mirror import ProbeResult
from asset_mirror.network.racer import EndpointRacer


class TestSelectFastest:
    """Tests for racing a list of endpoints."""

    def test_fastest_wins(self, fake_probe, metrics_registry):
        racer = EndpointRacer(probe=fake_probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["fast", "slow"], tries=1, timeout=5))

        assert result.success is True
        assert result.url == "fast"
        assert result.index == 0

    def test_order_does_not_matter(self, fake_probe, metrics_registry):
        racer = EndpointRacer(probe=fake_probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["slow", "fast"], tries=1, timeout=5))

        assert result.url == "fast"
        assert result.index == 1

    def test_empty_list_issues_no_probes(self, fake_probe, metrics_registry):
        racer = EndpointRacer(probe=fake_probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest([], tries=3, timeout=5))

        assert result.success is False
        assert fake_probe.calls == []
        assert metrics_registry.counter("probes_total").get() == 0

    def test_tie_goes_to_earlier_url(self, make_probe, metrics_registry):
        probe = make_probe({"first": 0.01, "second": 0.01})
        racer = EndpointRacer(probe=probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["first", "second"], tries=2, timeout=5))

        assert result.url == "first"

    def test_all_fail_returns_failure(self, make_probe, metrics_registry):
        probe = make_probe({"a": 0.0, "b": 0.0}, failing={"a", "b"})
        racer = EndpointRacer(probe=probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["a", "b"], tries=3, timeout=1))

        assert result.success is False
        assert "3 tries" in result.error
        assert len(probe.calls) == 6
        assert metrics_registry.counter("selections_total").get(labels={"result": "failed"}) == 1

    def test_failed_round_is_not_fatal(self, metrics_registry):
        class FlakyProbe:
            def __init__(self):
                self.round = 0

            async def __call__(self, url, timeout):
                self.round += 1
                if self.round == 1:
                    return ProbeResult(url=url, success=False, elapsed=0.0, error="refused")
                return ProbeResult(url=url, success=True, elapsed=0.02)

        racer = EndpointRacer(probe=FlakyProbe(), metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["only"], tries=2, timeout=1))

        assert result.success is True
        assert result.url == "only"

    def test_best_across_rounds(self, metrics_registry):
        class DriftingProbe:
            """Endpoint 'b' is slow in round 1 and fastest in round 2."""

            def __init__(self):
                self.calls = 0

            async def __call__(self, url, timeout):
                self.calls += 1
                round_no = (self.calls + 1) // 2
                elapsed = {"a": 0.03, "b": 0.09 if round_no == 1 else 0.01}[url]
                return ProbeResult(url=url, success=True, elapsed=elapsed)

        racer = EndpointRacer(probe=DriftingProbe(), metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["a", "b"], tries=2, timeout=1))

        assert result.url == "b"
        assert result.elapsed == pytest.approx(0.01)

    def test_round_deadline_bounds_slow_probe(self, make_probe, metrics_registry):
        probe = make_probe({"fast": 0.01, "hung": 30})
        racer = EndpointRacer(probe=probe, metrics=metrics_registry)

        started = time.monotonic()
        result = asyncio.run(racer.select_fastest(["hung", "fast"], tries=1, timeout=0.2))
        elapsed = time.monotonic() - started

        assert result.url == "fast"
        assert elapsed < 2
        assert metrics_registry.counter("probe_failures_total").get() == 1

    def test_probe_exception_is_contained(self, metrics_registry):
        async def broken(url, timeout):
            if url == "bad":
                raise RuntimeError("boom")
            return ProbeResult(url=url, success=True, elapsed=0.01)

        racer = EndpointRacer(probe=broken, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["bad", "good"], tries=1, timeout=1))

        assert result.url == "good"

    def test_tries_below_one_runs_once(self, fake_probe, metrics_registry):
        racer = EndpointRacer(probe=fake_probe, metrics=metrics_registry)

        result = asyncio.run(racer.select_fastest(["fast"], tries=0, timeout=1))

        assert result.success is True
        assert fake_probe.calls == ["fast"]

    def test_non_positive_timeout_rejected(self, fake_probe):
        racer = EndpointRacer(probe=fake_probe)

        with pytest.raises(ValueError):
            asyncio.run(racer.select_fastest(["fast"], tries=1, timeout=0))

    def test_cancellation_cancels_probes(self, metrics_registry):
        cancelled = []

        async def hanging(url, timeout):
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(url)
                raise
            return ProbeResult(url=url, success=True, elapsed=30)

        racer = EndpointRacer(probe=hanging, metrics=metrics_registry)

        async def run():
            task = asyncio.ensure_future(racer.select_fastest(["a", "b"], tries=1, timeout=10))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert sorted(cancelled) == ["a", "b"]
