"""Error taxonomy for upstream capabilities and core stores."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


class UpstreamError(RuntimeError):
    """Failure reported by an external fetch or extraction capability."""

    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.headers = dict(headers) if headers else {}


class TransientUpstreamError(UpstreamError):
    """Network failure, timeout or 5xx response."""


class RateLimitedError(UpstreamError):
    """429 response; the provider may dictate when to try again."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        reset_at: datetime | None = None,
        status_code: int | None = 429,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, headers=headers)
        self.retry_after = retry_after
        self.reset_at = reset_at


class QuotaExhaustedError(UpstreamError):
    """402 response. The capability is unusable for the rest of this run."""

    retryable = False


class UpstreamAuthenticationError(UpstreamError):
    """401/403 response. Operator action is required."""

    retryable = False


def error_for_status(
    status_code: int,
    message: str,
    *,
    headers: Mapping[str, str] | None = None,
) -> UpstreamError | None:
    """Map an HTTP status onto the taxonomy; ``None`` for non-error statuses."""

    if status_code == 429:
        return RateLimitedError(message, headers=headers)
    if status_code == 402:
        return QuotaExhaustedError(message, status_code=status_code, headers=headers)
    if status_code in {401, 403}:
        return UpstreamAuthenticationError(message, status_code=status_code, headers=headers)
    if status_code >= 500 or status_code == 408:
        return TransientUpstreamError(message, status_code=status_code, headers=headers)
    if status_code >= 400:
        error = UpstreamError(message, status_code=status_code, headers=headers)
        error.retryable = False
        return error
    return None


class FrontierError(RuntimeError):
    """Base class for crawl frontier failures."""


class TaskNotFoundError(FrontierError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Frontier task {task_id} does not exist")
        self.task_id = task_id


class InvalidTaskTransitionError(FrontierError):
    """Raised when a task would leave a terminal state or skip processing."""


class MissingIdentifierError(ValueError):
    """Raised when resolved item data carries no primary identifier."""


class GraphUnavailableError(RuntimeError):
    """Raised by graph storage when its schema has not been initialised."""
