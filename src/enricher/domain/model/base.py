"""Identity and time helpers shared by persisted records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


def new_id() -> UUID:
    return uuid4()


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Record:
    """Base for persisted records; the UUID is assigned at construction, not by storage."""

    id: UUID = field(default_factory=new_id)
