"""
Resolver Hook — The asset-resolution boundary.

Whatever resolves assets holds a ResolverHook (handed to it by the
composition root) and calls `resolve(location)` for each load. The
service installs its transform here once; later activations change
what the transform consults, not whether it is installed.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..models.mirror import ResourceLocation
from .base import IdTransform, TransformHookInstaller

logger = logging.getLogger(__name__)


class ResolverHook(TransformHookInstaller):
    """Holds the installed identifier transform."""

    def __init__(self):
        self._transform: Optional[IdTransform] = None
        self._lock = threading.Lock()
        self.installs = 0

    @property
    def installed(self) -> bool:
        return self._transform is not None

    def set_global_id_transform(self, fn: Optional[IdTransform]) -> None:
        with self._lock:
            self._transform = fn
            if fn is not None:
                self.installs += 1
        logger.debug("Identifier transform " + ("installed" if fn else "removed"))

    def resolve(self, location: ResourceLocation) -> str:
        """Storage identifier to load `location` from."""
        transform = self._transform
        if transform is None:
            return location.internal_id
        return transform(location, location.internal_id)
