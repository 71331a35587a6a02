"""
Adapters — Collaborators the core delegates to: manifest loading, the
resolver hook, and persistence interfaces.
"""

from .base import (
    IdTransform,
    ManifestHandle,
    ManifestLoader,
    PersistenceAdapter,
    TransformHookInstaller,
)
from .manifest_http import HttpManifestLoader
from .mock import MockManifestLoader
from .resolver_hook import ResolverHook

__all__ = [
    "IdTransform",
    "ManifestHandle",
    "ManifestLoader",
    "PersistenceAdapter",
    "TransformHookInstaller",
    "HttpManifestLoader",
    "MockManifestLoader",
    "ResolverHook",
]
