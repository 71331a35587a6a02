"""
Reliability Module — Circuit breakers for remote manifest hosts.
"""

from .circuit_breaker import (
    STATE_GAUGE_VALUES,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitConfig,
    CircuitState,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitConfig",
    "CircuitState",
    "STATE_GAUGE_VALUES",
]
