"""One crawl step: claimed task in, stored document and claims out."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.domain.errors import (
    InvalidTaskTransitionError,
    QuotaExhaustedError,
    UpstreamAuthenticationError,
    UpstreamError,
)
from enricher.domain.model import DocumentStatus, SourceKind, TaskStatus
from enricher.domain.ports.fetching import FetchedPage

if TYPE_CHECKING:
    from collections.abc import Callable

    from enricher.domain.frontier import Frontier
    from enricher.domain.ingestion import ClaimIngestion
    from enricher.domain.model import Claim, FrontierTask, SourceDocument
    from enricher.domain.ports.fetching import ClaimExtractor, FetchGuard, PageFetcher

log = getLogger(__name__)


def _unguarded(fetch: Callable[[], FetchedPage]) -> FetchedPage:
    return fetch()


@dataclass(slots=True)
class CrawlResult:
    task: FrontierTask
    document: SourceDocument
    claims: list[Claim] = field(default_factory=list)
    from_cache: bool = False
    used_fallback: bool = False


class CrawlStep:
    """Process claimed frontier tasks end to end.

    A task's page is served from a fresh cached document when one exists,
    otherwise fetched through ``guard`` (retries, circuit breaker). Once the
    primary fetcher reports an exhausted quota it stays disabled for the
    lifetime of this step and ``fallback_fetcher`` takes over.
    """

    def __init__(
        self,
        frontier: Frontier,
        ingestion: ClaimIngestion,
        fetcher: PageFetcher,
        extractor: ClaimExtractor,
        *,
        fallback_fetcher: PageFetcher | None = None,
        guard: FetchGuard = _unguarded,
        fallback_guard: FetchGuard | None = None,
        source_kind: SourceKind = SourceKind.SCRAPE,
    ) -> None:
        self._frontier = frontier
        self._ingestion = ingestion
        self._fetcher = fetcher
        self._fallback_fetcher = fallback_fetcher
        self._extractor = extractor
        self._guard = guard
        self._fallback_guard = fallback_guard or guard
        self._source_kind = source_kind
        self.primary_disabled = False

    def run_next(self, job_id: str) -> CrawlResult | None:
        task = self._frontier.next(job_id)
        if task is None:
            return None
        return self.process(task)

    def process(self, task: FrontierTask) -> CrawlResult | None:
        """Crawl ``task`` and mark it completed, or failed if the crawl raises.

        A task that has already finished is left alone and yields ``None``.
        """

        if task.id is None:
            raise ValueError("Only stored frontier tasks can be processed")
        stored = self._frontier.get(task.id)
        if stored is not None and stored.status.is_terminal:
            log.info("Task %s is already %s; not crawling it again", task.id, stored.status)
            return None
        item_id = str(task.meta.get("item_id") or task.job_id)
        try:
            result = self._crawl(task, item_id)
        except UpstreamAuthenticationError:
            log.error(
                "Authentication rejected while crawling %s; task %s failed", task.value, task.id
            )
            self._mark_failed(task.id)
            raise
        except Exception:
            log.warning("Crawl of %s failed; marking task %s failed", task.value, task.id)
            self._mark_failed(task.id)
            raise
        self._frontier.complete(task.id, TaskStatus.COMPLETED)
        return result

    def _mark_failed(self, task_id: int) -> None:
        try:
            self._frontier.complete(task_id, TaskStatus.FAILED)
        except InvalidTaskTransitionError:
            log.warning("Task %s finished elsewhere; keeping its status", task_id)

    def _crawl(self, task: FrontierTask, item_id: str) -> CrawlResult:
        document = self._ingestion.find_cached(task.value)
        from_cache = document is not None
        used_fallback = False
        if document is None:
            try:
                page, used_fallback = self._fetch(task.value)
            except UpstreamError as exc:
                self._ingestion.record_document(
                    task.job_id,
                    task.value,
                    None,
                    status=DocumentStatus.FAILED,
                    http_status=exc.status_code,
                )
                raise
            document = self._ingestion.record_document(
                task.job_id,
                page.url,
                page.content,
                http_status=page.status_code,
                title=page.title,
            )
        else:
            page = FetchedPage(
                url=document.url,
                content=document.raw_content or "",
                status_code=document.http_status,
                title=document.title,
            )

        extracted = self._extractor(page)
        claims = self._ingestion.ingest_claims(
            item_id, extracted, document=document, source_kind=self._source_kind
        )
        return CrawlResult(
            task=task,
            document=document,
            claims=claims,
            from_cache=from_cache,
            used_fallback=used_fallback,
        )

    def _fetch(self, target: str) -> tuple[FetchedPage, bool]:
        if not self.primary_disabled:
            try:
                return self._guard(lambda: self._fetcher(target)), False
            except QuotaExhaustedError:
                self.primary_disabled = True
                if self._fallback_fetcher is None:
                    raise
                log.warning("Primary fetcher quota exhausted; switching to fallback")

        fallback = self._fallback_fetcher
        if fallback is None:
            raise QuotaExhaustedError("Primary fetcher quota exhausted and no fallback configured")
        return self._fallback_guard(lambda: fallback(target)), True
