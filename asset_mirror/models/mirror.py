"""
Mirror Models — Mirror descriptors and the transient results of racing
and activation.

A Mirror is an alternate content-delivery endpoint. Its identity is the
remote URL compared case-insensitively, so "https://CDN-A/x" and
"https://cdn-a/x" name the same mirror.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, Optional

from pydantic import BaseModel, ConfigDict, model_validator


def mirror_key(remote_url: str) -> str:
    """Normalize a remote URL into a registry key."""
    return (remote_url or "").strip().casefold()


class Mirror(BaseModel):
    """A named alternate content-delivery endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    enabled: bool = True
    test_url: str = ""  # cheap URL probed during selection
    remote_url: str = ""  # base URL that asset identifiers are rewritten to
    catalog_name: str = ""  # manifest file under remote_url; empty = base URL only

    @model_validator(mode="after")
    def _enabled_needs_remote(self) -> "Mirror":
        if self.enabled and not self.remote_url.strip():
            raise ValueError(f"enabled mirror '{self.name}' has no remote_url")
        return self

    @property
    def key(self) -> str:
        return mirror_key(self.remote_url)

    @property
    def probe_url(self) -> str:
        """URL raced during selection (falls back to the remote URL)."""
        return self.test_url or self.remote_url

    @property
    def display_name(self) -> str:
        return self.name or self.remote_url

    def same_identity(self, other: Optional["Mirror"]) -> bool:
        return other is not None and self.key == other.key


def join_catalog_url(remote_url: str, catalog_name: str) -> str:
    """
    Join a base URL and a catalog name with exactly one separator.

    Returns "" when there is no catalog, meaning only the base URL changes.
    """
    if not catalog_name:
        return ""
    return f"{remote_url.rstrip('/')}/{catalog_name.lstrip('/')}"


@dataclass
class ProbeResult:
    """Outcome of one reachability check."""

    url: str
    success: bool
    elapsed: float
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class SelectionResult:
    """Outcome of racing a set of endpoints."""

    url: str = ""
    success: bool = False
    elapsed: float = math.inf
    index: Optional[int] = None  # position of the winner in the raced list
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "success": self.success,
            "elapsed": None if math.isinf(self.elapsed) else round(self.elapsed, 6),
            "index": self.index,
            "error": self.error,
        }


@dataclass
class ActivationResult:
    """Outcome of an activation request."""

    success: bool
    url: str
    error: str = ""
    catalog_url: str = ""
    changed: bool = False

    @classmethod
    def failed(cls, url: str, error: str) -> "ActivationResult":
        return cls(success=False, url=url, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "url": self.url,
            "error": self.error,
            "catalog_url": self.catalog_url,
            "changed": self.changed,
        }


class ActivationPhase(str, Enum):
    """Activation controller phases."""
    INACTIVE = "inactive"
    ACTIVATING = "activating"
    ACTIVE = "active"


@dataclass(frozen=True)
class ActivationState:
    """
    Snapshot of which mirror is active.

    Never mutated in place: the controller swaps whole snapshots, so a
    reader holding one always sees a consistent mirror/epoch pair.
    """

    active_mirror: Optional[Mirror] = None
    active_catalog_url: str = ""
    is_active: bool = False
    epoch: int = 0

    @property
    def active_url(self) -> str:
        return self.active_mirror.remote_url if self.active_mirror else ""


@dataclass(frozen=True)
class ResourceLocation:
    """
    Handle for one resolvable asset.

    `key` is the logical address; `internal_id` is the storage identifier
    that the rewrite hook transforms. Equal handles hash equally.
    """

    key: Hashable
    internal_id: str
