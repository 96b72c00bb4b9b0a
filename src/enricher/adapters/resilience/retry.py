"""Retry-with-backoff for calls into external capabilities."""

from __future__ import annotations

import random
import time
from datetime import UTC, datetime
from functools import wraps
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from enricher.config.resilience import RetryPolicy
from enricher.domain.errors import UpstreamError

from .circuit_breaker import CircuitBreaker, CircuitOpenError
from .rate_limit import rate_limit_wait

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

type RetryPredicate = Callable[[BaseException], bool]
type RetryListener = Callable[[int, BaseException, float], None]


def is_retryable(error: BaseException) -> bool:
    """Default classification: retry unless the failure is known to be permanent."""

    if isinstance(error, UpstreamError):
        return error.retryable
    if isinstance(error, CircuitOpenError):
        return False
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status == 408 or status >= 500
    return True


def backoff_delay(
    attempt: int, policy: RetryPolicy, *, rand: Callable[[], float] = random.random
) -> float:
    """Exponential delay for ``attempt`` (1-based), capped and shortened by jitter.

    Jitter only ever shortens a delay by at most half, so the schedule stays
    non-decreasing; the cap itself is never jittered.
    """

    raw = policy.base_delay * 2 ** (attempt - 1)
    if raw >= policy.max_delay:
        return policy.max_delay
    return raw * (1 - policy.jitter * rand())


class BackoffWait(wait_base):
    """Tenacity wait strategy honouring provider rate-limit hints."""

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        rand: Callable[[], float] = random.random,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.policy = policy
        self._rand = rand
        self._now = now

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None and outcome.failed else None
        if error is not None:
            provider_wait = rate_limit_wait(error, now=self._now())
            if provider_wait is not None:
                return provider_wait + self.policy.rate_limit_buffer
        return backoff_delay(retry_state.attempt_number, self.policy, rand=self._rand)


def _build_retrying(
    policy: RetryPolicy,
    *,
    operation: str,
    should_retry: RetryPredicate | None,
    on_retry: RetryListener | None,
    sleep: Callable[[float], None],
    wait: wait_base | None,
) -> Retrying:
    def predicate(error: BaseException) -> bool:
        return is_retryable(error) and (should_retry is None or should_retry(error))

    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        log.warning(
            "%s failed (attempt %s/%s): %s; retrying in %.2fs",
            operation,
            retry_state.attempt_number,
            policy.max_attempts,
            error,
            delay,
        )
        if on_retry is not None and error is not None:
            on_retry(retry_state.attempt_number, error, delay)

    return Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait or BackoffWait(policy),
        retry=retry_if_exception(predicate),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    )


def retry_with_backoff[T](
    func: Callable[[], T],
    *,
    policy: RetryPolicy | None = None,
    should_retry: RetryPredicate | None = None,
    on_retry: RetryListener | None = None,
    sleep: Callable[[float], None] = time.sleep,
    wait: wait_base | None = None,
    operation: str | None = None,
) -> T:
    """Call ``func`` until it succeeds, a failure is not retryable, or attempts run out.

    The last failure is re-raised unchanged.
    """

    retrying = _build_retrying(
        policy or RetryPolicy(),
        operation=operation or getattr(func, "__name__", "operation"),
        should_retry=should_retry,
        on_retry=on_retry,
        sleep=sleep,
        wait=wait,
    )
    return retrying(func)


def with_retry[**P, T](
    policy: RetryPolicy | None = None,
    *,
    should_retry: RetryPredicate | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return retry_with_backoff(
                lambda: func(*args, **kwargs),
                policy=policy,
                should_retry=should_retry,
                sleep=sleep,
                operation=func.__qualname__,
            )

        return wrapper

    return decorator


class GuardedCall:
    """Retry calls through a circuit breaker.

    Every attempt passes through ``breaker``; once it opens the resulting
    ``CircuitOpenError`` is not retried.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.breaker = breaker
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def __call__[T](self, func: Callable[[], T]) -> T:
        return retry_with_backoff(
            lambda: self.breaker.call(func),
            policy=self.policy,
            sleep=self._sleep,
            operation=self.breaker.name,
        )
