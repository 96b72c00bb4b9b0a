"""Application wiring: build the services over one explicitly owned database."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Literal, Self

from enricher.adapters.http import HttpPageFetcher
from enricher.adapters.resilience import CircuitBreakerRegistry, GuardedCall
from enricher.adapters.sqlalchemy.unit_of_work import Database, startup
from enricher.config import (
    PipelineConfig,
    ResilienceConfig,
    get_pipeline_config,
    get_resilience_config,
    get_trust_policy,
)
from enricher.domain.crawl import CrawlStep
from enricher.domain.frontier import Frontier
from enricher.domain.graph import GraphPopulator, GraphService
from enricher.domain.ingestion import ClaimIngestion
from enricher.domain.resolution import FieldResolutionService
from enricher.domain.trust import TrustEngine, TrustPolicy

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from enricher.domain.ports.fetching import ClaimExtractor, PageFetcher

log = getLogger(__name__)

PRIMARY_FETCHER = "primary-fetcher"
FALLBACK_FETCHER = "fallback-fetcher"


@dataclass(slots=True)
class Components:
    """Services sharing one ``Database``; ``close`` disposes it."""

    database: Database
    pipeline: PipelineConfig
    resilience: ResilienceConfig
    trust_policy: TrustPolicy
    frontier: Frontier = field(init=False)
    ingestion: ClaimIngestion = field(init=False)
    resolution: FieldResolutionService = field(init=False)
    graph: GraphService = field(init=False)
    populator: GraphPopulator = field(init=False)
    breakers: CircuitBreakerRegistry = field(init=False)

    def __post_init__(self) -> None:
        uow_factory = self.database.unit_of_work
        self.frontier = Frontier(uow_factory)
        self.ingestion = ClaimIngestion(uow_factory, cache_ttl=self.pipeline.source_cache_ttl)
        self.resolution = FieldResolutionService(uow_factory, TrustEngine(self.trust_policy))
        self.graph = GraphService(uow_factory)
        self.populator = GraphPopulator(uow_factory, evidence_limit=self.pipeline.evidence_limit)
        self.breakers = CircuitBreakerRegistry(self.resilience.breaker)

    def crawl_step(
        self,
        extractor: ClaimExtractor,
        *,
        fetcher: PageFetcher | None = None,
        fallback_fetcher: PageFetcher | None = None,
    ) -> CrawlStep:
        """Crawl step whose fetches are retried and guarded by per-fetcher breakers."""

        retry = self.resilience.retry
        return CrawlStep(
            self.frontier,
            self.ingestion,
            fetcher or HttpPageFetcher(config=self.resilience.fetch),
            extractor,
            fallback_fetcher=fallback_fetcher,
            guard=GuardedCall(self.breakers.get(PRIMARY_FETCHER), retry),
            fallback_guard=GuardedCall(self.breakers.get(FALLBACK_FETCHER), retry),
        )

    def close(self) -> None:
        self.database.dispose()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False


def build_components(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    migrate: bool = True,
) -> Components:
    """Start the database and assemble services from environment configuration."""

    database = startup(engine=engine, database_uri=database_uri, migrate=migrate)
    log.debug("Database ready at %s", database.engine.url.render_as_string(hide_password=True))
    return Components(
        database=database,
        pipeline=get_pipeline_config(),
        resilience=get_resilience_config(),
        trust_policy=get_trust_policy(),
    )
