"""
Tests for LocationRegistry and IdRewriteCache.
"""

import threading

from asset_mirror.location.registry import LocationRegistry
from asset_mirror.location.rewrite_cache import IdRewriteCache
from asset_mirror.models.mirror import Mirror


class TestLocationRegistry:
    """Tests for the mirror registry."""

    def test_register_and_lookup_case_insensitive(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        mirror = Mirror(name="A", remote_url="https://CDN-A/assets")

        assert registry.register(mirror) is True
        assert registry.lookup("https://cdn-a/assets") == mirror
        assert "HTTPS://cdn-a/ASSETS" in registry
        assert metrics_registry.gauge("registered_mirrors").get() == 1

    def test_disabled_mirror_never_stored(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)

        assert registry.register(Mirror(remote_url="cdnX", enabled=False)) is False
        assert len(registry) == 0
        assert registry.lookup("cdnX") is None

    def test_reregister_replaces_in_place(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        registry.register(Mirror(name="A", remote_url="cdnA"))
        registry.register(Mirror(name="B", remote_url="cdnB"))

        registry.register(Mirror(name="A2", remote_url="CDNA"))

        names = [m.name for m in registry.snapshot()]
        assert names == ["A2", "B"]

    def test_remove_by_url_and_by_mirror(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        a = Mirror(remote_url="cdnA")
        b = Mirror(remote_url="cdnB")
        registry.register(a)
        registry.register(b)

        assert registry.remove("CDNA") is True
        assert registry.remove(b) is True
        assert registry.remove("cdnA") is False
        assert len(registry) == 0

    def test_removal_listener_sees_entry_before_delete(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        mirror = Mirror(remote_url="cdnA")
        registry.register(mirror)
        seen = []

        registry.add_removal_listener(lambda m: seen.append((m, registry.lookup(m.remote_url))))
        registry.remove("cdnA")

        assert seen == [(mirror, mirror)]

    def test_as_dict_keyed_by_remote_url(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        registry.register(Mirror(remote_url="https://CDN-A/x"))

        assert list(registry.as_dict()) == ["https://CDN-A/x"]

    def test_empty_lookup(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        assert registry.lookup("") is None

    def test_clear(self, metrics_registry):
        registry = LocationRegistry(metrics=metrics_registry)
        registry.register(Mirror(remote_url="cdnA"))

        registry.clear()

        assert list(registry) == []
        assert metrics_registry.gauge("registered_mirrors").get() == 0


class TestIdRewriteCache:
    """Tests for the epoch-stamped rewrite cache."""

    def test_hit_and_miss(self):
        cache = IdRewriteCache()

        assert cache.get("h", 0) is None
        cache.store("h", "cdnB/x", 0)

        assert cache.get("h", 0) == "cdnB/x"
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_begin_epoch_clears(self):
        cache = IdRewriteCache()
        cache.store("h", "cdnA/x", 0)

        dropped = cache.begin_epoch(1)

        assert dropped == 1
        assert len(cache) == 0
        assert cache.epoch == 1

    def test_stale_reader_misses(self):
        cache = IdRewriteCache()
        cache.begin_epoch(2)
        cache.store("h", "cdnB/x", 2)

        assert cache.get("h", 1) is None

    def test_stale_write_dropped(self):
        cache = IdRewriteCache()
        cache.begin_epoch(3)

        assert cache.store("h", "cdnA/x", 2) is False
        assert len(cache) == 0
        assert cache.stats()["stale_writes_dropped"] == 1

    def test_concurrent_store_and_epoch_change(self):
        """No entry from an older epoch survives an epoch change."""
        cache = IdRewriteCache()
        stop = threading.Event()

        def writer():
            i = 0
            while not stop.is_set():
                cache.store(("h", i % 50), "old", 0)
                i += 1

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        cache.begin_epoch(1)
        stop.set()
        for t in threads:
            t.join()

        assert len(cache) == 0
