"""Rate-limited async HTTP client with transport-level retries."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

from enricher.config.resilience import FetchConfig

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import TimeoutTypes

# Only connection-level failures are retried here; statuses go to the step-level retry.
TRANSPORT_RETRY_EXCEPTIONS: tuple[type[httpx.HTTPError], ...] = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.RemoteProtocolError,
)


class AsyncClientOptions(TypedDict, total=False):
    timeout: TimeoutTypes
    headers: dict[str, str]
    follow_redirects: bool
    transport: httpx.AsyncBaseTransport


def build_transport_retry(config: FetchConfig) -> Retry:
    return Retry(
        total=config.transport_retries,
        backoff_factor=0.5,
        status_forcelist=(),
        retry_on_exceptions=TRANSPORT_RETRY_EXCEPTIONS,
        respect_retry_after_header=False,
    )


class RateLimitedClient:
    def __init__(
        self,
        config: FetchConfig,
        *,
        limiter: AsyncLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = limiter
        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "headers": {"User-Agent": config.user_agent},
            "follow_redirects": config.follow_redirects,
            "transport": RetryTransport(
                transport=transport, retry=build_transport_retry(config)
            ),
        }
        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> RateLimitedClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str) -> httpx.Response:
        if self._limiter is None:
            return await self._client.get(url)
        async with self._limiter:
            return await self._client.get(url)


def build_limiter(config: FetchConfig) -> AsyncLimiter | None:
    if config.ratelimit is None:
        return None
    return AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
