"""Configuration types for retries, circuit breakers and the HTTP fetcher."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, env_int


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 10.0
    # delays are shortened by up to this fraction; <= 0.5 keeps them non-decreasing
    jitter: float = 0.1
    rate_limit_buffer: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("delays must satisfy 0 <= base_delay <= max_delay")
        if not 0 <= self.jitter <= 0.5:
            raise ValueError("jitter must be within [0, 0.5]")


@dataclass(slots=True, frozen=True)
class CircuitBreakerPolicy:
    failure_threshold: int = 5
    reset_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class FetchConfig:
    timeout_seconds: float = 30.0
    user_agent: str = "enricher/1.0"
    transport_retries: int = 2
    ratelimit: RateLimit | None = field(default_factory=lambda: RateLimit(5, 1.0))
    follow_redirects: bool = True


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    breaker: CircuitBreakerPolicy = field(default_factory=CircuitBreakerPolicy)
    fetch: FetchConfig = field(default_factory=FetchConfig)


def get_resilience_config() -> ResilienceConfig:
    retry = RetryPolicy(
        max_attempts=env_int("ENRICHER_RETRY_MAX_ATTEMPTS", 4),
        base_delay=env_float("ENRICHER_RETRY_BASE_DELAY", 1.0),
        max_delay=env_float("ENRICHER_RETRY_MAX_DELAY", 10.0),
    )
    breaker = CircuitBreakerPolicy(
        failure_threshold=env_int("ENRICHER_BREAKER_THRESHOLD", 5),
        reset_timeout=env_float("ENRICHER_BREAKER_RESET_SECONDS", 30.0),
    )
    fetch = FetchConfig(timeout_seconds=env_float("ENRICHER_FETCH_TIMEOUT", 30.0))
    return ResilienceConfig(retry=retry, breaker=breaker, fetch=fetch)
