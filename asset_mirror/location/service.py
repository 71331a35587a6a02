"""
Remote Location Service — Composition root for mirror routing.

Wires the registry, racer, rewrite cache, rewriter and activation
controller around one set of collaborators, and implements the
bootstrap policy.

## Usage

    from asset_mirror.location.service import build_service

    service, hook = build_service(settings)
    result = await service.select_and_activate()

    # at the asset-resolution boundary
    storage_id = hook.resolve(location)

## Permanent remote

With `is_permanent_remote`, the first successful activation pins the
mirror for the rest of the process: `select_and_activate` stops racing
and returns the pinned mirror. Calling `configure()` again lifts the
pin. At bootstrap a persisted selection that is still registered is
activated directly, without racing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Tuple, Union

from ..adapters.base import ManifestLoader, PersistenceAdapter, TransformHookInstaller
from ..adapters.manifest_http import HttpManifestLoader
from ..adapters.mock import MockManifestLoader
from ..adapters.resolver_hook import ResolverHook
from ..config.loader import RemoteSettings
from ..models.mirror import ActivationResult, Mirror, ResourceLocation, SelectionResult
from ..network.racer import EndpointRacer
from ..observability.metrics import MetricsRegistry, metrics as default_metrics
from ..persistence.audit import AuditWriter
from ..persistence.state_file import JsonFilePersistence
from .controller import ActivationController
from .registry import LocationRegistry
from .rewrite_cache import IdRewriteCache
from .rewriter import IdRewriter

logger = logging.getLogger(__name__)


class RemoteLocationService:
    """Select, activate and rewrite against remote mirrors."""

    def __init__(
        self,
        settings: RemoteSettings,
        loader: ManifestLoader,
        hook_installer: TransformHookInstaller,
        persistence: Optional[PersistenceAdapter] = None,
        racer: Optional[EndpointRacer] = None,
        audit: Optional[AuditWriter] = None,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self._metrics = metrics or default_metrics
        self.settings = settings
        self.loader = loader
        self.registry = LocationRegistry(metrics=self._metrics)
        self.cache = IdRewriteCache()
        self.racer = racer or EndpointRacer(metrics=self._metrics)
        self.controller = ActivationController(
            registry=self.registry,
            cache=self.cache,
            loader=loader,
            hook_installer=hook_installer,
            transform=self.transform,
            persistence=persistence,
            audit=audit,
            local_mode=settings.local_mode,
            manifest_timeout=settings.manifest_timeout,
            metrics=self._metrics,
        )
        self.rewriter = IdRewriter(self.registry, self.cache, self.controller, metrics=self._metrics)
        self._pinned = False

        self.configure(settings)

    # ─── Configuration & registry ───────────────────────────

    def configure(self, settings: RemoteSettings) -> int:
        """Apply settings and register their enabled remotes. Lifts any pin."""
        self.settings = settings
        self.controller.local_mode = settings.local_mode
        self.controller.manifest_timeout = settings.manifest_timeout
        self._pinned = False
        registered = sum(1 for mirror in settings.remotes if self.registry.register(mirror))
        logger.info(f"Configured {registered} remote location(s)")
        return registered

    def register(self, mirror: Mirror) -> bool:
        return self.registry.register(mirror)

    def remove(self, target: Union[str, Mirror]) -> bool:
        return self.registry.remove(target)

    def lookup(self, remote_url: str) -> Optional[Mirror]:
        return self.registry.lookup(remote_url)

    @property
    def remote_locations(self) -> Dict[str, Mirror]:
        return self.registry.as_dict()

    @property
    def active_remote_location(self) -> Optional[Mirror]:
        return self.controller.active_mirror

    def set_status(self, enabled: bool) -> None:
        self.controller.set_status(enabled)

    # ─── Selection & activation ─────────────────────────────

    async def select_remote_location(
        self,
        tries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> SelectionResult:
        """
        Race every registered mirror's probe URL.

        The winner's `url` is its remote URL (not the probed test URL). A
        non-positive timeout fails the selection without probing anything.
        """
        tries = tries if tries is not None else self.settings.url_tries_count
        timeout = timeout if timeout is not None else self.settings.timeout_seconds
        if timeout <= 0:
            logger.warning(f"Rejected selection with timeout {timeout}s")
            return SelectionResult(error="timeout must be positive")

        candidates: List[Mirror] = [m for m in self.registry.snapshot() if m.enabled]
        if not candidates:
            return SelectionResult(error="no remote locations registered")

        result = await self.racer.select_fastest(
            [m.probe_url for m in candidates],
            tries=tries,
            timeout=timeout,
        )
        if not result.success or result.index is None:
            if not result.error:
                result.error = "failed to select remote location"
            return result

        winner = candidates[result.index]
        result.url = winner.remote_url
        return result

    async def activate(self, target: Union[Mirror, str]) -> ActivationResult:
        result = await self.controller.activate(target)
        if result.success and self.settings.is_permanent_remote:
            self._pinned = True
        return result

    async def select_and_activate(self) -> ActivationResult:
        """
        Bootstrap: pick a mirror and activate it.

        When nothing can be selected, no mirror is activated and asset
        resolution keeps using the unmodified identifiers.
        """
        if not self.settings.enabled:
            return ActivationResult.failed("", "remote locations disabled")

        current = self.controller.active_mirror
        if self._pinned and current is not None:
            logger.debug(f"Permanent remote pinned to {current.display_name}, skipping selection")
            return ActivationResult(success=True, url=current.remote_url, changed=False)

        if self.settings.is_permanent_remote:
            restored = self.controller.restore_selection()
            if restored and self.registry.lookup(restored) is not None:
                logger.info(f"Reusing persisted mirror {restored}")
                result = await self.activate(restored)
                if result.success:
                    return result
                logger.warning(f"Persisted mirror unusable ({result.error}), selecting again")

        selection = await self.select_remote_location()
        if not selection.success:
            logger.warning(f"No remote location selected: {selection.error}")
            return ActivationResult.failed("", selection.error or "selection failed")

        return await self.activate(selection.url)

    # ─── Rewrite path ───────────────────────────────────────

    def transform(self, handle: Hashable, raw_id: str) -> str:
        """Storage identifier for `raw_id`, rewritten to the active mirror."""
        return self.rewriter.transform(handle, raw_id)

    def validate_transform(self, location: ResourceLocation) -> bool:
        """True when `location` is eligible for rewriting right now."""
        return self.rewriter.should_rewrite(self.controller.state, location.internal_id)

    # ─── Status & teardown ──────────────────────────────────

    def status(self) -> Dict[str, Any]:
        state = self.controller.state
        return {
            "enabled": self.settings.enabled,
            "globally_enabled": self.controller.globally_enabled,
            "phase": self.controller.phase.value,
            "is_active": state.is_active,
            "active_url": state.active_url,
            "active_catalog_url": state.active_catalog_url,
            "epoch": state.epoch,
            "pinned": self._pinned,
            "hook_installed": self.controller.hook_installed,
            "remotes": [
                {
                    "name": m.name,
                    "remote_url": m.remote_url,
                    "test_url": m.test_url,
                    "catalog_name": m.catalog_name,
                }
                for m in self.registry.snapshot()
            ],
            "cache": self.cache.stats(),
        }

    def dispose(self) -> None:
        """Remove the hook and forget every mirror and cached rewrite."""
        self.controller.uninstall_hook()
        self.controller.deactivate(reason="disposed")
        self.cache.begin_epoch(self.controller.state.epoch)
        self.registry.clear()
        self._pinned = False
        logger.info("Remote location service disposed")


def build_service(
    settings: RemoteSettings,
    state_dir: Optional[Path] = None,
    audit_path: Optional[Path] = None,
    loader: Optional[ManifestLoader] = None,
    persistence: Optional[PersistenceAdapter] = None,
    hook: Optional[ResolverHook] = None,
    racer: Optional[EndpointRacer] = None,
) -> Tuple[RemoteLocationService, ResolverHook]:
    """
    Build a service and the resolver hook it installs into.

    In local mode the manifest loader is the mock (nothing is fetched);
    otherwise manifests come over HTTP and are cached under `state_dir`.
    """
    state_dir = Path(state_dir) if state_dir else Path("state")
    hook = hook or ResolverHook()

    if loader is None:
        if settings.local_mode:
            loader = MockManifestLoader()
        else:
            loader = HttpManifestLoader(
                cache_dir=state_dir / "manifest_cache",
                timeout=settings.manifest_timeout,
            )

    if persistence is None:
        persistence = JsonFilePersistence(state_dir / "mirror_selection.json")

    audit = AuditWriter(audit_path) if audit_path else None

    service = RemoteLocationService(
        settings=settings,
        loader=loader,
        hook_installer=hook,
        persistence=persistence,
        racer=racer,
        audit=audit,
    )
    return service, hook
