"""Circuit breaker for outbound text-generation calls.

After `failure_threshold` consecutive failures the circuit opens and calls
are refused without reaching the remote API. Once `recovery_timeout` has
elapsed a single probe is let through (half-open); its outcome decides
whether the circuit closes again or re-opens.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum

from content_clusters.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""

    failure_threshold: int
    recovery_timeout: float


class CircuitBreaker:
    """Tracks consecutive failures of one remote dependency."""

    def __init__(self, config: CircuitBreakerConfig, name: str = "default") -> None:
        self._config = config
        self._name = name
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        self._state = new_state
        logger.log(
            logging.WARNING if new_state == CircuitState.OPEN else logging.INFO,
            "Circuit breaker state change",
            extra={
                "circuit_name": self._name,
                "previous_state": previous.value,
                "new_state": new_state.value,
                "failure_count": self._failure_count,
            },
        )

    async def can_execute(self) -> bool:
        """Return True if a call may be attempted now.

        A call admitted while half-open is the probe; it must end in
        record_success or record_failure before another call is admitted.
        """
        async with self._lock:
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.HALF_OPEN:
                # One probe at a time; the rest wait for its outcome
                if self._probe_in_flight:
                    return False
                self._probe_in_flight = True
                return True
            if (
                self._opened_at is not None
                and time.monotonic() - self._opened_at >= self._config.recovery_timeout
            ):
                self._transition(CircuitState.HALF_OPEN)
                self._probe_in_flight = True
                return True
            return False

    async def record_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            self._opened_at = None
            self._probe_in_flight = False
            if self._state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._probe_in_flight = False
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._opened_at = time.monotonic()
                self._transition(CircuitState.OPEN)
