"""Ports for the external fetch and extraction capabilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from enricher.domain.model import ClaimValue


@dataclass(frozen=True, slots=True)
class FetchedPage:
    url: str
    content: str
    status_code: int | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ExtractedClaim:
    """A field/value pair as produced by extraction, before persistence."""

    field_name: str
    value: ClaimValue
    confidence: int = 50
    normalized_value: str | None = None


class PageFetcher(Protocol):
    """Turn a URL or query into page content.

    Implementations raise the ``enricher.domain.errors`` upstream taxonomy.
    """

    def __call__(self, target: str) -> FetchedPage: ...


class ClaimExtractor(Protocol):
    def __call__(self, page: FetchedPage) -> Sequence[ExtractedClaim]: ...


type FetchGuard = Callable[[Callable[[], FetchedPage]], FetchedPage]
"""Wraps a fetch call with retries, breakers or similar policies."""
