"""
Shared fixtures for mirror routing tests.

Everything here is in-process: manifest loading is mocked, persistence
lives in memory, and each test gets its own metrics registry so counters
never leak between tests.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from asset_mirror.adapters.mock import MockManifestLoader
from asset_mirror.adapters.resolver_hook import ResolverHook
from asset_mirror.config.loader import RemoteSettings
from asset_mirror.location.service import RemoteLocationService
from asset_mirror.models.mirror import Mirror, ProbeResult
from asset_mirror.network.racer import EndpointRacer
from asset_mirror.observability.metrics import MetricsRegistry
from asset_mirror.persistence.state_file import MemoryPersistence


class FakeProbe:
    """
    Probe with scripted latencies.

    `latencies` maps URL → seconds; URLs in `failing` fail after their
    latency. Unknown URLs fail immediately.
    """

    def __init__(self, latencies: Dict[str, float], failing: Optional[set] = None):
        self.latencies = latencies
        self.failing = set(failing or ())
        self.calls: List[str] = []

    async def __call__(self, url: str, timeout: float) -> ProbeResult:
        self.calls.append(url)
        if url not in self.latencies:
            return ProbeResult(url=url, success=False, elapsed=0.0, error="unknown")
        delay = self.latencies[url]
        await asyncio.sleep(delay)
        if url in self.failing:
            return ProbeResult(url=url, success=False, elapsed=delay, error="refused")
        return ProbeResult(url=url, success=True, elapsed=delay, status_code=200)


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def mirror_a() -> Mirror:
    return Mirror(name="A", test_url="fast", remote_url="cdnA", catalog_name="catalog.json")


@pytest.fixture
def mirror_b() -> Mirror:
    return Mirror(name="B", test_url="slow", remote_url="cdnB", catalog_name="catalog.json")


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe({"fast": 0.05, "slow": 0.5})


@pytest.fixture
def make_probe():
    return FakeProbe


@pytest.fixture
def loader() -> MockManifestLoader:
    return MockManifestLoader()


@pytest.fixture
def persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def hook() -> ResolverHook:
    return ResolverHook()


@pytest.fixture
def make_service(loader, persistence, hook, fake_probe, metrics_registry):
    """Factory: build a service over the shared fakes with given settings."""

    def _make(**overrides) -> RemoteLocationService:
        settings = RemoteSettings(**overrides)
        return RemoteLocationService(
            settings=settings,
            loader=loader,
            hook_installer=hook,
            persistence=persistence,
            racer=EndpointRacer(probe=fake_probe, metrics=metrics_registry),
            metrics=metrics_registry,
        )

    return _make


@pytest.fixture
def service(make_service, mirror_a, mirror_b) -> RemoteLocationService:
    """Service with mirrors A (fast) and B (slow) registered, nothing active."""
    return make_service(remotes=[mirror_a, mirror_b], url_tries_count=1, timeout_seconds=5)
