from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from enricher.domain.errors import InvalidTaskTransitionError, TaskNotFoundError
from enricher.domain.frontier import Frontier
from enricher.domain.model import TaskKind, TaskStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from enricher.adapters.sqlalchemy import Database, SqlAlchemyUnitOfWork

JOB = "job-1"


@pytest.fixture
def frontier(unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork]) -> Frontier:
    return Frontier(unit_of_work_factory)


def test_add_is_idempotent_per_job_kind_value(frontier: Frontier) -> None:
    first = frontier.add(JOB, TaskKind.QUERY, "CE285A toner")
    second = frontier.add(JOB, TaskKind.QUERY, "CE285A toner", priority=99)

    assert first is not None
    assert first.id is not None
    assert first.status is TaskStatus.PENDING
    assert second is None
    assert frontier.stats(JOB).pending == 1


def test_same_value_is_distinct_across_jobs_and_kinds(frontier: Frontier) -> None:
    assert frontier.add(JOB, TaskKind.URL, "https://nix.ru/item") is not None
    assert frontier.add(JOB, TaskKind.DEEP_CRAWL, "https://nix.ru/item") is not None
    assert frontier.add("job-2", TaskKind.URL, "https://nix.ru/item") is not None

    assert frontier.stats(JOB).total == 2
    assert frontier.stats("job-2").total == 1


def test_next_serves_priority_then_insertion_order(frontier: Frontier) -> None:
    low = frontier.add(JOB, TaskKind.QUERY, "low", priority=10)
    first = frontier.add(JOB, TaskKind.QUERY, "first", priority=80)
    second = frontier.add(JOB, TaskKind.QUERY, "second", priority=80)
    assert low is not None and first is not None and second is not None

    served = [frontier.next(JOB), frontier.next(JOB), frontier.next(JOB)]

    assert [task.id for task in served if task is not None] == [first.id, second.id, low.id]
    assert all(task is not None and task.status is TaskStatus.PROCESSING for task in served)
    assert frontier.next(JOB) is None


def test_next_only_claims_within_job(frontier: Frontier) -> None:
    frontier.add("other-job", TaskKind.QUERY, "elsewhere")

    assert frontier.next(JOB) is None


def test_next_batch_claims_up_to_limit_in_order(frontier: Frontier) -> None:
    for index in range(5):
        frontier.add(JOB, TaskKind.URL, f"https://example.com/{index}", priority=index)

    batch = frontier.next_batch(JOB, 3)

    assert [task.value for task in batch] == [
        "https://example.com/4",
        "https://example.com/3",
        "https://example.com/2",
    ]
    assert frontier.stats(JOB).processing == 3
    assert frontier.next_batch(JOB, 0) == []
    assert len(frontier.next_batch(JOB, 10)) == 2


def test_complete_moves_processing_task_to_terminal(frontier: Frontier) -> None:
    frontier.add(JOB, TaskKind.QUERY, "toner")
    task = frontier.next(JOB)
    assert task is not None and task.id is not None

    assert frontier.complete(task.id, TaskStatus.COMPLETED) is True
    stored = frontier.get(task.id)

    assert stored is not None
    assert stored.status is TaskStatus.COMPLETED
    assert frontier.stats(JOB).completed == 1


def test_complete_is_safe_to_repeat_but_never_leaves_terminal(frontier: Frontier) -> None:
    frontier.add(JOB, TaskKind.QUERY, "toner")
    task = frontier.next(JOB)
    assert task is not None and task.id is not None
    frontier.complete(task.id, TaskStatus.FAILED)

    assert frontier.complete(task.id, TaskStatus.FAILED) is False
    with pytest.raises(InvalidTaskTransitionError):
        frontier.complete(task.id, TaskStatus.COMPLETED)


def test_complete_rejects_pending_unknown_and_non_terminal(frontier: Frontier) -> None:
    pending = frontier.add(JOB, TaskKind.QUERY, "toner")
    assert pending is not None and pending.id is not None

    with pytest.raises(InvalidTaskTransitionError):
        frontier.complete(pending.id, TaskStatus.COMPLETED)
    with pytest.raises(InvalidTaskTransitionError):
        frontier.complete(pending.id, TaskStatus.PROCESSING)
    with pytest.raises(TaskNotFoundError):
        frontier.complete(9999, TaskStatus.COMPLETED)


def test_stats_counts_every_status(frontier: Frontier) -> None:
    for value in ("a", "b", "c", "d"):
        frontier.add(JOB, TaskKind.QUERY, value)
    done, failed, _ = frontier.next_batch(JOB, 3)
    assert done.id is not None and failed.id is not None
    frontier.complete(done.id, TaskStatus.COMPLETED)
    frontier.complete(failed.id, TaskStatus.FAILED)

    stats = frontier.stats(JOB)

    assert (stats.pending, stats.processing, stats.completed, stats.failed) == (1, 1, 1, 1)
    assert stats.total == 4


def test_meta_round_trips(frontier: Frontier) -> None:
    frontier.add(JOB, TaskKind.URL, "https://nix.ru/x", depth=2, meta={"item_id": "sku-7"})

    task = frontier.next(JOB)

    assert task is not None
    assert task.meta == {"item_id": "sku-7"}
    assert task.depth == 2


def test_reclaim_stale_returns_old_processing_tasks(
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    frontier = Frontier(unit_of_work_factory)
    frontier.add(JOB, TaskKind.QUERY, "stuck")
    assert frontier.next(JOB) is not None

    assert frontier.reclaim_stale() == 0

    later = Frontier(
        unit_of_work_factory, clock=lambda: datetime.now(UTC) + timedelta(hours=1)
    )
    assert later.reclaim_stale(older_than=timedelta(minutes=15), job_id="other-job") == 0
    assert later.reclaim_stale(older_than=timedelta(minutes=15), job_id=JOB) == 1

    assert frontier.stats(JOB).pending == 1
    assert frontier.next(JOB) is not None


def test_concurrent_next_never_hands_out_a_task_twice(file_database: Database) -> None:
    frontier = Frontier(file_database.unit_of_work)
    for index in range(40):
        frontier.add(JOB, TaskKind.URL, f"https://example.com/{index}")

    def drain() -> list[int]:
        claimed: list[int] = []
        while (task := frontier.next(JOB)) is not None:
            assert task.id is not None
            claimed.append(task.id)
        return claimed

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = [future.result() for future in [pool.submit(drain) for _ in range(6)]]

    claimed = [task_id for batch in results for task_id in batch]
    assert len(claimed) == 40
    assert len(set(claimed)) == 40
    assert frontier.stats(JOB).processing == 40
