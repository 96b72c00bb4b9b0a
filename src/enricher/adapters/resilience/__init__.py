"""Retry and circuit-breaker wrappers for external capabilities."""

from __future__ import annotations

from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
)
from .rate_limit import is_rate_limited, parse_timestamp, rate_limit_wait
from .retry import (
    BackoffWait,
    GuardedCall,
    backoff_delay,
    is_retryable,
    retry_with_backoff,
    with_retry,
)

__all__ = [
    "BackoffWait",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "GuardedCall",
    "backoff_delay",
    "is_rate_limited",
    "is_retryable",
    "parse_timestamp",
    "rate_limit_wait",
    "retry_with_backoff",
    "with_retry",
]
