"""Per-dependency circuit breaker.

After ``failure_threshold`` consecutive failures the breaker opens and calls
fail fast with ``CircuitOpenError``. Once ``reset_timeout`` has passed exactly
one trial call is let through (half-open): success closes the breaker, failure
re-opens it for a fresh cooldown.
"""

from __future__ import annotations

import threading
import time
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.config.resilience import CircuitBreakerPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    def __init__(self, name: str, retry_in: float) -> None:
        super().__init__(f"Circuit {name!r} is open; retry in {retry_in:.1f}s")
        self.name = name
        self.retry_in = retry_in


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        policy: CircuitBreakerPolicy | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.policy = policy or CircuitBreakerPolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def call[T](self, func: Callable[..., T], *args: object, **kwargs: object) -> T:
        self._before_call()
        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def reset(self) -> None:
        with self._lock:
            self._close()

    def _before_call(self) -> None:
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return
            if self._state is CircuitState.OPEN:
                remaining = self.policy.reset_timeout - (self._clock() - self._opened_at)
                if remaining > 0:
                    raise CircuitOpenError(self.name, remaining)
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                log.info("Circuit %s half-open; allowing one trial call", self.name)
                return
            if self._trial_in_flight:
                raise CircuitOpenError(self.name, 0.0)
            self._trial_in_flight = True

    def _on_success(self) -> None:
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                log.info("Circuit %s closed after successful trial", self.name)
            self._close()

    def _on_failure(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._open()
                return
            self._failures += 1
            if self._failures >= self.policy.failure_threshold:
                self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_in_flight = False
        log.warning(
            "Circuit %s opened after %s failure(s); cooling down for %.1fs",
            self.name,
            self._failures,
            self.policy.reset_timeout,
        )

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._trial_in_flight = False


class CircuitBreakerRegistry:
    """One breaker per named dependency, created on first use."""

    def __init__(
        self,
        policy: CircuitBreakerPolicy | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or CircuitBreakerPolicy()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, self.policy, clock=self._clock)
                self._breakers[name] = breaker
            return breaker
