"""HTTP implementation of the page fetch capability."""

from __future__ import annotations

import asyncio
import re
from html import unescape
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx

from enricher.config.resilience import FetchConfig
from enricher.domain.errors import TransientUpstreamError, error_for_status
from enricher.domain.ports.fetching import FetchedPage

from .client import RateLimitedClient, build_limiter

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

_TITLE: Final = re.compile(r"<title[^>]*>(?P<title>.*?)</title>", re.IGNORECASE | re.DOTALL)


def _as_url(target: str) -> str:
    value = target.strip()
    if "://" in value:
        return value
    return f"https://{value}"


def _title_of(html: str) -> str | None:
    match = _TITLE.search(html)
    if match is None:
        return None
    return " ".join(unescape(match["title"]).split()) or None


class HttpPageFetcher:
    """Fetch pages over HTTP, reporting failures through the upstream error taxonomy."""

    def __init__(
        self,
        config: FetchConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or FetchConfig()
        self._transport = transport
        self._limiter = build_limiter(self.config)

    def __call__(self, target: str) -> FetchedPage:
        return asyncio.run(self.fetch(target))

    async def fetch(self, target: str) -> FetchedPage:
        async with self._client() as client:
            return await self._fetch_with(client, target)

    async def fetch_all(self, targets: Iterable[str]) -> list[FetchedPage | BaseException]:
        """Fetch concurrently under the shared limiter; failures are returned in place."""

        async with self._client() as client:
            return await asyncio.gather(
                *(self._fetch_with(client, target) for target in targets),
                return_exceptions=True,
            )

    def _client(self) -> RateLimitedClient:
        return RateLimitedClient(self.config, limiter=self._limiter, transport=self._transport)

    async def _fetch_with(self, client: RateLimitedClient, target: str) -> FetchedPage:
        url = _as_url(target)
        try:
            response = await client.get(url)
        except httpx.TransportError as exc:
            raise TransientUpstreamError(f"Fetching {url} failed: {exc}") from exc

        error = error_for_status(
            response.status_code,
            f"Fetching {url} returned HTTP {response.status_code}: {response.text[:200]}",
            headers=dict(response.headers),
        )
        if error is not None:
            log.debug("Fetch of %s failed with %s", url, response.status_code)
            raise error

        content = response.text
        return FetchedPage(
            url=str(response.url),
            content=content,
            status_code=response.status_code,
            title=_title_of(content),
        )
