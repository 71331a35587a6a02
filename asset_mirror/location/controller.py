"""
Activation Controller — Switch the active mirror as one transactional unit.

## Protocol

    resolve → validate → (same mirror? done) → initialize manifest subsystem
      → load manifest → purge local cache → install hook → commit → persist

Everything that can suspend or fail externally happens before the
commit. The commit itself is synchronous and runs under the registry
lock: it advances the cache epoch, then swaps in the new state snapshot.
A failed or cancelled activation therefore leaves the previous mirror
active and usable, with the cache untouched.

Calls to `activate` are serialized by an asyncio lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple, Union

from ..adapters.base import IdTransform, ManifestLoader, PersistenceAdapter, TransformHookInstaller
from ..models.mirror import (
    ActivationPhase,
    ActivationResult,
    ActivationState,
    Mirror,
    join_catalog_url,
)
from ..observability.metrics import MetricsRegistry, metrics as default_metrics
from ..persistence.audit import AuditWriter
from .registry import LocationRegistry
from .rewrite_cache import IdRewriteCache

logger = logging.getLogger(__name__)

# Persistence key for the last activated mirror's remote URL
SELECTION_KEY = "active_remote_location"


class ActivationController:
    """Owns ActivationState and every transition of it."""

    def __init__(
        self,
        registry: LocationRegistry,
        cache: IdRewriteCache,
        loader: ManifestLoader,
        hook_installer: TransformHookInstaller,
        transform: IdTransform,
        persistence: Optional[PersistenceAdapter] = None,
        audit: Optional[AuditWriter] = None,
        local_mode: bool = False,
        manifest_timeout: float = 10.0,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self._registry = registry
        self._cache = cache
        self._loader = loader
        self._hook_installer = hook_installer
        self._transform = transform
        self._persistence = persistence
        self._audit = audit
        self._metrics = metrics or default_metrics

        self.local_mode = local_mode
        self.manifest_timeout = manifest_timeout
        self.globally_enabled = True

        self._state = ActivationState()
        self._phase = ActivationPhase.INACTIVE
        self._lock = asyncio.Lock()
        self._manifest_ready = False
        self._hook_installed = False

        registry.add_removal_listener(self._on_mirror_removed)

    # ─── Read-only views ────────────────────────────────────

    @property
    def state(self) -> ActivationState:
        return self._state

    @property
    def phase(self) -> ActivationPhase:
        return self._phase

    @property
    def active_mirror(self) -> Optional[Mirror]:
        return self._state.active_mirror

    @property
    def hook_installed(self) -> bool:
        return self._hook_installed

    def set_status(self, enabled: bool) -> None:
        """Allow or suppress identifier rewriting. Never touches state."""
        self.globally_enabled = bool(enabled)
        logger.info(f"Identifier rewriting {'enabled' if enabled else 'disabled'}")

    # ─── Activation ─────────────────────────────────────────

    async def activate(self, target: Union[Mirror, str]) -> ActivationResult:
        """
        Make `target` the active mirror.

        Args:
            target: A Mirror, or the remote URL of a registered mirror

        Returns:
            ActivationResult; on failure the previous state is intact
        """
        mirror, was_registered, error = self._resolve(target)
        url = mirror.remote_url if mirror else (target if isinstance(target, str) else "")
        if mirror is None:
            return self._fail(url, error)
        if not mirror.enabled:
            return self._fail(url, "mirror disabled")

        async with self._lock:
            current = self._state
            if mirror.same_identity(current.active_mirror):
                logger.debug(f"Mirror {mirror.display_name} already active")
                return ActivationResult(
                    success=True,
                    url=current.active_url,
                    catalog_url=current.active_catalog_url,
                    changed=False,
                )

            self._phase = ActivationPhase.ACTIVATING
            try:
                return await self._activate_locked(mirror, was_registered)
            finally:
                # Covers failure and cancellation alike
                self._phase = ActivationPhase.ACTIVE if self._state.is_active else ActivationPhase.INACTIVE

    async def _activate_locked(self, mirror: Mirror, was_registered: bool) -> ActivationResult:
        url = mirror.remote_url
        catalog_url = join_catalog_url(url, mirror.catalog_name)

        if not await self._ensure_manifest_ready():
            return self._fail(url, "manifest subsystem failed to initialize")

        if catalog_url and not await self._load_manifest(catalog_url):
            return self._fail(url, f"manifest load failed: {catalog_url}")

        if not self.local_mode:
            await self._purge_local_cache()

        try:
            self._install_hook()
        except Exception as e:
            logger.exception(f"Installing identifier transform failed: {e}")
            return self._fail(url, f"hook installation failed: {e}")

        committed, epoch = self._commit(mirror, catalog_url, was_registered)
        if not committed:
            return self._fail(url, "mirror removed during activation")

        self._persist_selection(url)

        logger.info(
            f"Activated mirror {mirror.display_name} (epoch {epoch})",
            extra={"mirror_url": url, "catalog_url": catalog_url, "epoch": epoch},
        )
        self._metrics.increment("activations_total", labels={"result": "ok"})
        if self._audit:
            self._audit.emit(
                "activation_committed",
                mirror_url=url,
                epoch=epoch,
                details={"catalog_url": catalog_url, "name": mirror.name},
            )
        return ActivationResult(success=True, url=url, catalog_url=catalog_url, changed=True)

    def _resolve(self, target: Union[Mirror, str]) -> Tuple[Optional[Mirror], bool, str]:
        if isinstance(target, Mirror):
            return target, self._registry.lookup(target.remote_url) is not None, ""
        if not target:
            return None, False, "not found: empty remote url"
        mirror = self._registry.lookup(target)
        if mirror is None:
            return None, False, f"not found: {target}"
        return mirror, True, ""

    async def _ensure_manifest_ready(self) -> bool:
        if self._manifest_ready:
            return True
        try:
            ready = await asyncio.wait_for(self._loader.initialize(), self.manifest_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Manifest subsystem did not initialize within {self.manifest_timeout}s")
            return False
        except Exception as e:
            logger.exception(f"Manifest subsystem initialization raised: {e}")
            return False
        self._manifest_ready = bool(ready)
        return self._manifest_ready

    async def _load_manifest(self, catalog_url: str) -> bool:
        try:
            handle = await asyncio.wait_for(
                self._loader.load_manifest_at(catalog_url), self.manifest_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Manifest load timed out after {self.manifest_timeout}s",
                extra={"catalog_url": catalog_url},
            )
            return False
        except Exception as e:
            logger.exception(f"Manifest loader raised for {catalog_url}: {e}")
            return False

        if handle is None:
            logger.warning(f"Manifest load failed: {catalog_url}", extra={"catalog_url": catalog_url})
            return False

        logger.info(f"Manifest loaded from {catalog_url}", extra={"catalog_url": catalog_url})
        return True

    async def _purge_local_cache(self) -> None:
        try:
            await asyncio.wait_for(self._loader.purge_local_cache(), self.manifest_timeout)
        except asyncio.TimeoutError:
            logger.warning("Local cache purge timed out, continuing")
        except Exception as e:
            logger.warning(f"Local cache purge failed, continuing: {e}")

    def _install_hook(self) -> None:
        if self._hook_installed:
            return
        self._hook_installer.set_global_id_transform(self._transform)
        self._hook_installed = True
        logger.debug("Identifier transform hook installed")

    def _commit(self, mirror: Mirror, catalog_url: str, was_registered: bool) -> Tuple[bool, int]:
        with self._registry.locked():
            if was_registered and self._registry.lookup(mirror.remote_url) is None:
                return False, self._state.epoch
            epoch = self._state.epoch + 1
            # Epoch first: readers of the old snapshot can no longer
            # read from or write into the cache once it has moved.
            self._cache.begin_epoch(epoch)
            self._state = ActivationState(
                active_mirror=mirror,
                active_catalog_url=catalog_url,
                is_active=True,
                epoch=epoch,
            )
            self._phase = ActivationPhase.ACTIVE
        self._metrics.set_gauge("active_mirror_epoch", epoch)
        return True, epoch

    def _persist_selection(self, remote_url: str) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.save(SELECTION_KEY, remote_url)
        except Exception as e:
            logger.warning(f"Could not persist selected mirror: {e}")

    def _fail(self, url: str, error: str) -> ActivationResult:
        logger.warning(f"Activation of '{url}' failed: {error}", extra={"mirror_url": url})
        self._metrics.increment("activations_total", labels={"result": "failed"})
        if self._audit:
            self._audit.emit(
                "activation_failed",
                mirror_url=url,
                level="warning",
                epoch=self._state.epoch,
                details={"error": error},
            )
        return ActivationResult.failed(url, error)

    # ─── Deactivation ───────────────────────────────────────

    def deactivate(self, reason: str = "") -> bool:
        """Clear the active mirror. Returns False if nothing was active."""
        with self._registry.locked():
            current = self._state
            if current.active_mirror is None and not current.is_active:
                return False
            epoch = current.epoch + 1
            self._cache.begin_epoch(epoch)
            self._state = ActivationState(epoch=epoch)
            if self._phase != ActivationPhase.ACTIVATING:
                self._phase = ActivationPhase.INACTIVE

        self._metrics.set_gauge("active_mirror_epoch", epoch)
        logger.info(
            f"Deactivated mirror {current.active_url}" + (f" ({reason})" if reason else ""),
            extra={"mirror_url": current.active_url, "epoch": epoch},
        )
        if self._audit:
            self._audit.emit(
                "deactivated",
                mirror_url=current.active_url,
                epoch=epoch,
                details={"reason": reason},
            )
        return True

    def _on_mirror_removed(self, mirror: Mirror) -> None:
        # Runs under the registry lock, before the entry disappears
        if mirror.same_identity(self._state.active_mirror):
            self.deactivate(reason="mirror removed")

    # ─── Restart recovery ───────────────────────────────────

    def restore_selection(self) -> Optional[str]:
        """Remote URL saved by the last successful activation, if readable."""
        if self._persistence is None:
            return None
        try:
            value = self._persistence.load(SELECTION_KEY)
        except Exception as e:
            logger.warning(f"Could not read persisted mirror selection: {e}")
            return None
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    def uninstall_hook(self) -> None:
        if not self._hook_installed:
            return
        self._hook_installer.set_global_id_transform(None)
        self._hook_installed = False
