"""Crawl frontier task records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .base import utc_now
from .enums import TaskKind, TaskStatus

DEFAULT_PRIORITY = 50
DEFAULT_DEPTH = 0


@dataclass(slots=True, kw_only=True)
class FrontierTask:
    """A unit of crawl work scoped to a job.

    ``id`` is assigned by storage and doubles as the insertion order used to
    break priority ties.
    """

    job_id: str
    kind: TaskKind
    value: str
    id: int | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: int = DEFAULT_PRIORITY
    depth: int = DEFAULT_DEPTH
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class FrontierStats:
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed
