"""
Tests for HttpManifestLoader — driven through httpx.MockTransport.
"""

import asyncio

import httpx

from asset_mirror.adapters.manifest_http import HttpManifestLoader
from asset_mirror.reliability.circuit_breaker import CircuitBreakerRegistry, CircuitConfig

CATALOG_URL = "https://cdn-a.example.com/assets/catalog.json"


def _loader(tmp_path, handler, metrics_registry, **kwargs) -> HttpManifestLoader:
    return HttpManifestLoader(
        cache_dir=tmp_path / "manifest_cache",
        transport=httpx.MockTransport(handler),
        metrics=metrics_registry,
        **kwargs,
    )


class TestHttpManifestLoader:
    """Tests for fetching, caching and purging manifests."""

    def test_initialize_creates_cache_dir(self, tmp_path, metrics_registry):
        loader = _loader(tmp_path, lambda r: httpx.Response(200), metrics_registry)

        assert asyncio.run(loader.initialize()) is True
        assert (tmp_path / "manifest_cache").is_dir()

    def test_load_caches_content(self, tmp_path, metrics_registry):
        loader = _loader(tmp_path, lambda r: httpx.Response(200, content=b'{"v": 1}'), metrics_registry)

        handle = asyncio.run(loader.load_manifest_at(CATALOG_URL))

        assert handle.url == CATALOG_URL
        assert handle.content == b'{"v": 1}'
        assert loader.cache_path_for(CATALOG_URL).read_bytes() == b'{"v": 1}'

    def test_http_error_returns_none(self, tmp_path, metrics_registry):
        loader = _loader(tmp_path, lambda r: httpx.Response(404), metrics_registry)

        assert asyncio.run(loader.load_manifest_at(CATALOG_URL)) is None

    def test_transport_error_returns_none(self, tmp_path, metrics_registry):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        loader = _loader(tmp_path, refuse, metrics_registry)

        assert asyncio.run(loader.load_manifest_at(CATALOG_URL)) is None

    def test_circuit_opens_for_failing_host(self, tmp_path, metrics_registry):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(500)

        breakers = CircuitBreakerRegistry(CircuitConfig(failure_threshold=2))
        loader = _loader(tmp_path, handler, metrics_registry, breakers=breakers)

        for _ in range(3):
            assert asyncio.run(loader.load_manifest_at(CATALOG_URL)) is None

        assert len(calls) == 2
        assert breakers.get_open_circuits() == ["cdn-a.example.com"]
        gauge = metrics_registry.gauge("circuit_breaker_state")
        assert gauge.get(labels={"host": "cdn-a.example.com"}) == 1

    def test_purge_keeps_current_manifest(self, tmp_path, metrics_registry):
        loader = _loader(tmp_path, lambda r: httpx.Response(200, content=b"{}"), metrics_registry)
        asyncio.run(loader.initialize())
        stale = loader.cache_dir / "bundle.bin"
        stale.write_bytes(b"old")
        (loader.cache_dir / "nested").mkdir()

        asyncio.run(loader.load_manifest_at(CATALOG_URL))
        asyncio.run(loader.purge_local_cache())

        assert [p.name for p in loader.cache_dir.iterdir()] == [loader.cache_path_for(CATALOG_URL).name]

    def test_purge_without_cache_dir(self, tmp_path, metrics_registry):
        loader = _loader(tmp_path, lambda r: httpx.Response(200), metrics_registry)

        asyncio.run(loader.purge_local_cache())

        assert not loader.cache_dir.exists()
