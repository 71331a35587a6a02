"""
Adapter Base Classes — Interfaces for the collaborators around the core.

The core never fetches manifests, owns the resolver, or touches disk
itself. It talks to these three interfaces instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Hashable, Optional

IdTransform = Callable[[Hashable, str], str]


@dataclass
class ManifestHandle:
    """A loaded remote manifest (contents are opaque to the core)."""

    url: str
    content: bytes = b""
    loaded_at_iso: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )


class ManifestLoader(ABC):
    """
    Remote manifest subsystem.

    Implementations report failure by returning None / False, never by
    raising. Callers still guard against contract violations.
    """

    @abstractmethod
    async def initialize(self) -> bool:
        """Prepare the subsystem. Must be idempotent."""
        pass

    @abstractmethod
    async def load_manifest_at(self, url: str) -> Optional[ManifestHandle]:
        """Load the manifest at `url`; None signals failure."""
        pass

    @abstractmethod
    async def purge_local_cache(self) -> None:
        """Best-effort removal of locally cached content."""
        pass


class TransformHookInstaller(ABC):
    """Owner of the single identifier-transform hook used at resolution time."""

    @abstractmethod
    def set_global_id_transform(self, fn: Optional[IdTransform]) -> None:
        """Install `fn`, or remove the hook when `fn` is None."""
        pass


class PersistenceAdapter(ABC):
    """Durable string key-value storage."""

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        pass
