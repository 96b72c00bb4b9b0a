"""HTTP adapters."""

from __future__ import annotations

from .client import RateLimitedClient, build_limiter
from .fetcher import HttpPageFetcher

__all__ = ["HttpPageFetcher", "RateLimitedClient", "build_limiter"]
