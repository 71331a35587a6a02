"""
Network Module — Endpoint probing and racing.
"""

from .probe import EndpointProbe
from .racer import EndpointRacer, ProbeFn

__all__ = ["EndpointProbe", "EndpointRacer", "ProbeFn"]
