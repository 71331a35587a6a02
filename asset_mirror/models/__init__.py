"""
Models — Mirror descriptors and operation results.
"""

from .mirror import (
    ActivationPhase,
    ActivationResult,
    ActivationState,
    Mirror,
    ProbeResult,
    ResourceLocation,
    SelectionResult,
    join_catalog_url,
    mirror_key,
)

__all__ = [
    "Mirror",
    "ProbeResult",
    "SelectionResult",
    "ActivationResult",
    "ActivationPhase",
    "ActivationState",
    "ResourceLocation",
    "join_catalog_url",
    "mirror_key",
]
