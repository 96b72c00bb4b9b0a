from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from enricher.adapters.sqlalchemy import StartupError
from enricher.app import FALLBACK_FETCHER, PRIMARY_FETCHER, build_components
from enricher.domain.errors import QuotaExhaustedError
from enricher.domain.model import TaskKind
from enricher.domain.ports.fetching import ExtractedClaim, FetchedPage

if TYPE_CHECKING:
    from collections.abc import Sequence


def _extract(page: FetchedPage) -> Sequence[ExtractedClaim]:
    return [ExtractedClaim(field_name="title", value=page.title or "", confidence=70)]


def _exhausted(target: str) -> FetchedPage:
    raise QuotaExhaustedError(f"quota gone for {target}", status_code=402)


def _fallback(target: str) -> FetchedPage:
    return FetchedPage(url=target, content="<title>HP 85A</title>", status_code=200, title="HP 85A")


def test_components_share_one_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_EVIDENCE_LIMIT", "4")
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    with build_components(engine=engine) as components:
        components.frontier.add("job-1", TaskKind.QUERY, "CE285A")
        assert components.frontier.stats("job-1").pending == 1
        assert components.populator.evidence_limit == 4
        database = components.database

    assert database.is_disposed
    with pytest.raises(StartupError):
        database.unit_of_work()


def test_crawl_step_switches_to_fallback_on_quota() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    with build_components(engine=engine) as components:
        components.frontier.add(
            "job-1", TaskKind.URL, "https://hp.com/ce285a", meta={"item_id": "sku-1"}
        )
        step = components.crawl_step(_extract, fetcher=_exhausted, fallback_fetcher=_fallback)

        result = step.run_next("job-1")

        assert result is not None
        assert result.used_fallback is True
        assert step.primary_disabled is True
        assert result.claims[0].value == "HP 85A"
        assert components.breakers.get(PRIMARY_FETCHER).failures == 1
        assert components.breakers.get(FALLBACK_FETCHER).failures == 0
