"""
Circuit Breaker — Stop hammering a manifest host that keeps failing.

## States

- CLOSED: Normal operation, requests pass through
- OPEN: Host is failing, requests are rejected immediately
- HALF_OPEN: One trial request decides whether the host recovered

## Usage

    from asset_mirror.reliability.circuit_breaker import CircuitBreaker

    breaker = CircuitBreaker("cdn-a.example.com")

    if breaker.allow_request():
        ok = fetch()
        breaker.record_success() if ok else breaker.record_failure()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


STATE_GAUGE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
    CircuitState.HALF_OPEN: 2,
}


@dataclass
class CircuitConfig:
    """Configuration for a circuit breaker."""

    # Failures within the window that trip the circuit
    failure_threshold: int = 3

    # Time window for counting failures (seconds)
    failure_window_seconds: float = 60

    # Time to wait before allowing a trial request (seconds)
    reset_timeout_seconds: float = 30

    # Trial successes needed to close again
    success_threshold: int = 1


@dataclass
class CircuitStats:
    success_count: int = 0
    failure_count: int = 0
    rejected_count: int = 0


class CircuitBreaker:
    """
    Circuit breaker for one external host.

    Uses a monotonic clock (injectable for tests) and is safe to share
    between threads.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitConfig] = None,
        clock: Clock = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitConfig()
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._stats = CircuitStats()
        self._window_failures: List[float] = []
        self._opened_at: Optional[float] = None
        self._half_open_successes = 0

    @property
    def state(self) -> CircuitState:
        """Current state, applying the OPEN → HALF_OPEN timeout."""
        with self._lock:
            return self._current_state()

    def _current_state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.config.reset_timeout_seconds:
                self._transition_to(CircuitState.HALF_OPEN)
        return self._state

    def allow_request(self) -> bool:
        with self._lock:
            if self._current_state() != CircuitState.OPEN:
                return True
            self._stats.rejected_count += 1
        logger.warning(f"Circuit {self.name} is OPEN, rejecting request")
        return False

    def record_success(self) -> None:
        with self._lock:
            self._stats.success_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._half_open_successes += 1
                if self._half_open_successes >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED)

    def record_failure(self) -> None:
        with self._lock:
            self._stats.failure_count += 1
            now = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                return

            if self._state == CircuitState.CLOSED:
                horizon = now - self.config.failure_window_seconds
                self._window_failures = [t for t in self._window_failures if t > horizon]
                self._window_failures.append(now)
                if len(self._window_failures) >= self.config.failure_threshold:
                    self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._half_open_successes = 0

        if new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
        elif new_state == CircuitState.CLOSED:
            self._opened_at = None
            self._window_failures.clear()

        logger.info(f"Circuit {self.name}: {old_state.value} → {new_state.value}")

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._stats = CircuitStats()
            self._window_failures.clear()
            self._opened_at = None
            self._half_open_successes = 0

    def get_stats(self) -> Dict[str, Any]:
        state = self.state
        return {
            "name": self.name,
            "state": state.value,
            "stats": asdict(self._stats),
            "config": asdict(self.config),
        }


class CircuitBreakerRegistry:
    """One breaker per name (e.g. per manifest host), created on demand."""

    def __init__(self, config: Optional[CircuitConfig] = None, clock: Clock = time.monotonic):
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._config = config
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, name: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, self._config, clock=self._clock)
                self._breakers[name] = breaker
            return breaker

    def get_all_stats(self) -> Dict[str, Any]:
        with self._lock:
            breakers = list(self._breakers.items())
        return {name: breaker.get_stats() for name, breaker in breakers}

    def get_open_circuits(self) -> List[str]:
        with self._lock:
            breakers = list(self._breakers.items())
        return [name for name, breaker in breakers if breaker.state == CircuitState.OPEN]

    def reset_all(self) -> None:
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()
