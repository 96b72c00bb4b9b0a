#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import timedelta
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from enricher.adapters.extraction import parse_researched_item
from enricher.adapters.sqlalchemy.migrations import upgrade_head
from enricher.app import build_components
from enricher.config import configure_logging, get_database_config
from enricher.domain.model import DEFAULT_DEPTH, DEFAULT_PRIORITY, TaskKind, TaskStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from enricher.app import Components

log = logging.getLogger(__name__)

type Handler = Callable[[Components, argparse.Namespace], object]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Catalog enrichment core")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply database migrations")

    frontier = subparsers.add_parser("frontier", help="Crawl frontier commands")
    frontier_sub = frontier.add_subparsers(dest="frontier_command", required=True)
    add = frontier_sub.add_parser("add", help="Enqueue a task")
    add.add_argument("job_id", type=str)
    add.add_argument("kind", type=TaskKind, choices=list(TaskKind))
    add.add_argument("value", type=str)
    add.add_argument("--priority", type=int, default=DEFAULT_PRIORITY)
    add.add_argument("--depth", type=int, default=DEFAULT_DEPTH)
    add.add_argument("--item-id", type=str, help="Item the task gathers evidence for")
    next_task = frontier_sub.add_parser("next", help="Claim the next pending task(s)")
    next_task.add_argument("job_id", type=str)
    next_task.add_argument("--limit", type=int, default=1)
    complete = frontier_sub.add_parser("complete", help="Finish a claimed task")
    complete.add_argument("task_id", type=int)
    complete.add_argument(
        "status",
        type=TaskStatus,
        choices=[TaskStatus.COMPLETED, TaskStatus.FAILED],
    )
    stats = frontier_sub.add_parser("stats", help="Task counts per status")
    stats.add_argument("job_id", type=str)
    reclaim = frontier_sub.add_parser("reclaim", help="Return stale processing tasks")
    reclaim.add_argument("--job-id", type=str)
    reclaim.add_argument(
        "--older-than-minutes",
        type=float,
        help="Age after which a processing task counts as stale (defaults to config)",
    )

    resolve_field = subparsers.add_parser("resolve-field", help="Resolve one field of an item")
    resolve_field.add_argument("item_id", type=str)
    resolve_field.add_argument("field", type=str)
    resolve_item = subparsers.add_parser("resolve-item", help="Resolve all fields of an item")
    resolve_item.add_argument("item_id", type=str)

    identity = subparsers.add_parser("identity", help="Look up an identifier in the graph")
    identity.add_argument("query", type=str)
    identity.add_argument("--brand", type=str)
    compat = subparsers.add_parser("compat", help="Check consumable/printer compatibility")
    compat.add_argument("consumable", type=str)
    compat.add_argument("printer", type=str)
    link = subparsers.add_parser("link-alias", help="Attach an alias to a canonical entity")
    link.add_argument("alias", type=str)
    link.add_argument("canonical_name", type=str)
    link.add_argument("--brand", type=str)
    link.add_argument("--source", type=str, default="manual")

    populate = subparsers.add_parser("populate", help="Write researched item data to the graph")
    populate.add_argument("item_id", type=str)
    populate.add_argument("file", type=Path, help="JSON file holding the finalized item data")
    populate.add_argument("--job-id", type=str)

    args = parser.parse_args(list(argv))
    if getattr(args, "limit", 1) < 1:
        raise ValueError("--limit must be at least 1")
    if getattr(args, "older_than_minutes", None) is not None and args.older_than_minutes < 0:
        raise ValueError("--older-than-minutes must be non-negative")
    return args


def _emit(payload: object) -> None:
    print(json.dumps(payload, default=str, indent=2, sort_keys=True))


def _as_dict(value: Any) -> Any:
    return None if value is None else asdict(value)


def _frontier_add(components: Components, args: argparse.Namespace) -> object:
    meta = {"item_id": args.item_id} if args.item_id else None
    task = components.frontier.add(
        args.job_id, args.kind, args.value, priority=args.priority, depth=args.depth, meta=meta
    )
    if task is None:
        log.info("Task already queued for job %s", args.job_id)
    return _as_dict(task)


def _frontier_next(components: Components, args: argparse.Namespace) -> object:
    return [asdict(task) for task in components.frontier.next_batch(args.job_id, args.limit)]


def _frontier_complete(components: Components, args: argparse.Namespace) -> object:
    return {"changed": components.frontier.complete(args.task_id, args.status)}


def _frontier_stats(components: Components, args: argparse.Namespace) -> object:
    stats = components.frontier.stats(args.job_id)
    return {**asdict(stats), "total": stats.total}


def _frontier_reclaim(components: Components, args: argparse.Namespace) -> object:
    older_than = (
        timedelta(minutes=args.older_than_minutes)
        if args.older_than_minutes is not None
        else components.pipeline.stale_task_timeout
    )
    reclaimed = components.frontier.reclaim_stale(older_than=older_than, job_id=args.job_id)
    return {"reclaimed": reclaimed}


def _resolve_field(components: Components, args: argparse.Namespace) -> object:
    return _as_dict(components.resolution.resolve_field(args.item_id, args.field))


def _resolve_item(components: Components, args: argparse.Namespace) -> object:
    return _as_dict(components.resolution.resolve_item(args.item_id))


def _identity(components: Components, args: argparse.Namespace) -> object:
    return _as_dict(components.graph.resolve_identity(args.query, args.brand))


def _compat(components: Components, args: argparse.Namespace) -> object:
    return {"compatible": components.graph.check_compatibility(args.consumable, args.printer)}


def _link_alias(components: Components, args: argparse.Namespace) -> object:
    return _as_dict(
        components.graph.link_alias(args.alias, args.canonical_name, args.brand, args.source)
    )


def _populate(components: Components, args: argparse.Namespace) -> object:
    payload = json.loads(args.file.read_text(encoding="utf-8"))
    item = parse_researched_item(payload)
    return asdict(components.populator.populate_from_research(args.item_id, item, args.job_id))


HANDLERS: dict[tuple[str, str | None], Handler] = {
    ("frontier", "add"): _frontier_add,
    ("frontier", "next"): _frontier_next,
    ("frontier", "complete"): _frontier_complete,
    ("frontier", "stats"): _frontier_stats,
    ("frontier", "reclaim"): _frontier_reclaim,
    ("resolve-field", None): _resolve_field,
    ("resolve-item", None): _resolve_item,
    ("identity", None): _identity,
    ("compat", None): _compat,
    ("link-alias", None): _link_alias,
    ("populate", None): _populate,
}


def run(args: argparse.Namespace) -> object:
    """Execute the parsed command and return its JSON-serialisable result."""

    database_uri = args.database_uri or get_database_config().uri
    if args.command == "migrate":
        upgrade_head(database_uri=database_uri)
        log.info("Database migrated")
        return {"migrated": True}

    handler = HANDLERS.get((args.command, getattr(args, "frontier_command", None)))
    if handler is None:
        raise ValueError(f"Unsupported command: {args.command}")
    with build_components(database_uri=database_uri) as components:
        return handler(components, args)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    configure_logging()
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    if parsed_args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = run(parsed_args)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    _emit(result)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
