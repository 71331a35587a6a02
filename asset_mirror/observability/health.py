"""
Health Check — Component status for the mirror routing service.

## Usage

    from asset_mirror.observability.health import HealthChecker

    checker = HealthChecker(service)
    status = checker.check()

    if not status.healthy:
        print(status.to_dict())

An inactive service is DEGRADED, not UNHEALTHY: assets still load from
their unmodified identifiers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..adapters.manifest_http import HttpManifestLoader
    from ..location.service import RemoteLocationService

_STARTED_AT = time.time()


class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemHealth:
    """Overall system health status."""

    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    components: List[ComponentHealth]

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "healthy": self.healthy,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "details": c.details,
                }
                for c in self.components
            ],
        }


class HealthChecker:
    """Derive component health from a RemoteLocationService."""

    def __init__(self, service: "RemoteLocationService", loader: Optional["HttpManifestLoader"] = None):
        self.service = service
        self.loader = loader

    def check(self) -> SystemHealth:
        components = [
            self._check_registry(),
            self._check_activation(),
            self._check_rewrite_cache(),
        ]
        if self.loader is not None:
            components.append(self._check_manifest_hosts())

        statuses = {c.status for c in components}
        if HealthStatus.UNHEALTHY in statuses:
            overall = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        return SystemHealth(
            status=overall,
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            uptime_seconds=round(time.time() - _STARTED_AT, 1),
            components=components,
        )

    def _check_registry(self) -> ComponentHealth:
        count = len(self.service.registry)
        if not self.service.settings.enabled:
            return ComponentHealth("registry", HealthStatus.HEALTHY, "Remote locations disabled")
        if count == 0:
            return ComponentHealth("registry", HealthStatus.UNHEALTHY, "No remote locations registered")
        return ComponentHealth("registry", HealthStatus.HEALTHY, f"{count} remote location(s)", {"count": count})

    def _check_activation(self) -> ComponentHealth:
        controller = self.service.controller
        state = controller.state
        details = {"phase": controller.phase.value, "epoch": state.epoch}
        if not controller.globally_enabled:
            return ComponentHealth("activation", HealthStatus.DEGRADED, "Rewriting switched off", details)
        if not state.is_active:
            return ComponentHealth(
                "activation",
                HealthStatus.DEGRADED,
                "No active mirror; identifiers are used unmodified",
                details,
            )
        return ComponentHealth("activation", HealthStatus.HEALTHY, f"Active: {state.active_url}", details)

    def _check_rewrite_cache(self) -> ComponentHealth:
        stats = self.service.cache.stats()
        lookups = stats["hits"] + stats["misses"]
        hit_rate = stats["hits"] / lookups if lookups else None
        message = f"{stats['size']} entries" + (f", hit rate {hit_rate:.0%}" if hit_rate is not None else "")
        return ComponentHealth("rewrite_cache", HealthStatus.HEALTHY, message, stats)

    def _check_manifest_hosts(self) -> ComponentHealth:
        open_circuits = self.loader.breakers.get_open_circuits()
        if open_circuits:
            return ComponentHealth(
                "manifest_hosts",
                HealthStatus.DEGRADED,
                f"{len(open_circuits)} host(s) circuit-open",
                {"open": open_circuits},
            )
        return ComponentHealth("manifest_hosts", HealthStatus.HEALTHY, "All manifest hosts reachable")
