"""Per-job prioritized crawl queue with deduplication.

Each task is handed out exactly once: claiming flips ``pending`` to
``processing`` through a conditional update in storage, so concurrent workers
polling the same job never receive the same task. Tasks are served by priority
(highest first) and FIFO within a priority.
"""

from __future__ import annotations

from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

from enricher.domain.errors import InvalidTaskTransitionError, TaskNotFoundError
from enricher.domain.model import (
    DEFAULT_DEPTH,
    DEFAULT_PRIORITY,
    FrontierStats,
    FrontierTask,
    TaskKind,
    TaskStatus,
    utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from enricher.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=15)


class Frontier:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._clock = clock

    def add(
        self,
        job_id: str,
        kind: TaskKind,
        value: str,
        *,
        priority: int = DEFAULT_PRIORITY,
        depth: int = DEFAULT_DEPTH,
        meta: Mapping[str, Any] | None = None,
    ) -> FrontierTask | None:
        """Enqueue a task; returns ``None`` if (job, kind, value) is already known."""

        now = self._clock()
        task = FrontierTask(
            job_id=job_id,
            kind=TaskKind(kind),
            value=value,
            priority=priority,
            depth=depth,
            meta=dict(meta or {}),
            created_at=now,
            updated_at=now,
        )
        with self._uow_factory() as uow:
            stored = uow.repositories.frontier.insert(task)
            uow.commit()
        if stored is None:
            log.debug("Frontier task already queued: job=%s kind=%s value=%s", job_id, kind, value)
        return stored

    def next(self, job_id: str) -> FrontierTask | None:
        batch = self.next_batch(job_id, 1)
        return batch[0] if batch else None

    def next_batch(self, job_id: str, limit: int) -> list[FrontierTask]:
        if limit <= 0:
            return []
        with self._uow_factory() as uow:
            claimed = uow.repositories.frontier.claim(job_id, limit=limit)
            uow.commit()
        if claimed:
            log.debug("Claimed %s frontier task(s) for job %s", len(claimed), job_id)
        return claimed

    def complete(self, task_id: int, status: TaskStatus) -> bool:
        """Move a processing task to a terminal status.

        Returns ``False`` when the task already carries ``status`` so a retried
        step can call this again safely. Any other transition out of a terminal
        state, or from ``pending``, raises ``InvalidTaskTransitionError``.
        """

        status = TaskStatus(status)
        if not status.is_terminal:
            raise InvalidTaskTransitionError(f"{status} is not a terminal status")

        with self._uow_factory() as uow:
            repository = uow.repositories.frontier
            if repository.finish(task_id, status):
                uow.commit()
                return True
            task = repository.get(task_id)

        if task is None:
            raise TaskNotFoundError(task_id)
        if task.status is status:
            return False
        raise InvalidTaskTransitionError(
            f"Frontier task {task_id} cannot move from {task.status} to {status}"
        )

    def get(self, task_id: int) -> FrontierTask | None:
        with self._uow_factory() as uow:
            return uow.repositories.frontier.get(task_id)

    def stats(self, job_id: str) -> FrontierStats:
        with self._uow_factory() as uow:
            counts = uow.repositories.frontier.count_by_status(job_id)
        return FrontierStats(
            pending=counts.get(TaskStatus.PENDING, 0),
            processing=counts.get(TaskStatus.PROCESSING, 0),
            completed=counts.get(TaskStatus.COMPLETED, 0),
            failed=counts.get(TaskStatus.FAILED, 0),
        )

    def reclaim_stale(
        self,
        *,
        older_than: timedelta = DEFAULT_STALE_AFTER,
        job_id: str | None = None,
    ) -> int:
        """Return tasks stuck in ``processing`` (e.g. after a worker crash) to the queue."""

        cutoff = self._clock() - older_than
        with self._uow_factory() as uow:
            reclaimed = uow.repositories.frontier.reclaim_stale(cutoff=cutoff, job_id=job_id)
            uow.commit()
        if reclaimed:
            log.warning("Reclaimed %s stale frontier task(s) older than %s", reclaimed, cutoff)
        return reclaimed
