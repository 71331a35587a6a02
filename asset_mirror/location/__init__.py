"""
Location Module — Mirror registry, activation, and identifier rewriting.

This is the main entry point for mirror routing:

    from asset_mirror.location import build_service

    service, hook = build_service(settings)
    await service.select_and_activate()
"""

from .controller import SELECTION_KEY, ActivationController
from .registry import LocationRegistry
from .rewrite_cache import IdRewriteCache
from .rewriter import IdRewriter
from .service import RemoteLocationService, build_service

__all__ = [
    "ActivationController",
    "IdRewriteCache",
    "IdRewriter",
    "LocationRegistry",
    "RemoteLocationService",
    "SELECTION_KEY",
    "build_service",
]
