from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from enricher.ui import cli

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def database_uri(tmp_path: Path) -> str:
    return f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"


def _run(capsys: pytest.CaptureFixture[str], database_uri: str, *argv: str) -> object:
    cli.main(["--database-uri", database_uri, *argv])
    return json.loads(capsys.readouterr().out)


def test_frontier_round_trip(capsys: pytest.CaptureFixture[str], database_uri: str) -> None:
    added = _run(
        capsys,
        database_uri,
        "frontier",
        "add",
        "job-1",
        "url",
        "https://nix.ru/ce285a",
        "--item-id",
        "item-1",
    )
    duplicate = _run(
        capsys, database_uri, "frontier", "add", "job-1", "url", "https://nix.ru/ce285a"
    )
    claimed = _run(capsys, database_uri, "frontier", "next", "job-1")

    assert isinstance(added, dict)
    assert added["meta"] == {"item_id": "item-1"}
    assert duplicate is None
    assert isinstance(claimed, list)
    assert claimed[0]["status"] == "processing"

    changed = _run(capsys, database_uri, "frontier", "complete", str(added["id"]), "completed")
    stats = _run(capsys, database_uri, "frontier", "stats", "job-1")

    assert changed == {"changed": True}
    assert stats == {"pending": 0, "processing": 0, "completed": 1, "failed": 0, "total": 1}


def test_link_alias_then_identity(capsys: pytest.CaptureFixture[str], database_uri: str) -> None:
    linked = _run(capsys, database_uri, "link-alias", "85A", "CE285A", "--brand", "HP")
    match = _run(capsys, database_uri, "identity", "85a")

    assert isinstance(linked, dict)
    assert linked["entity_created"] is True
    assert isinstance(match, dict)
    assert match["canonical_name"] == "CE285A"


def test_populate_reads_research_file(
    capsys: pytest.CaptureFixture[str], database_uri: str, tmp_path: Path
) -> None:
    research = tmp_path / "item.json"
    research.write_text(
        json.dumps(
            {
                "mpn": "CE285A",
                "brand": "HP",
                "compatible_printers_ru": ["HP LaserJet P1102"],
            }
        ),
        encoding="utf-8",
    )

    result = _run(capsys, database_uri, "populate", "item-1", str(research))
    compat = _run(capsys, database_uri, "compat", "CE285A", "HP LaserJet P1102")

    assert isinstance(result, dict)
    assert result["edges_created"] == 2
    assert compat == {"compatible": True}


def test_resolve_field_without_claims(
    capsys: pytest.CaptureFixture[str], database_uri: str
) -> None:
    assert _run(capsys, database_uri, "resolve-field", "item-1", "yield") is None


def test_invalid_limit_exits_with_validation_code(database_uri: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--database-uri", database_uri, "frontier", "next", "job-1", "--limit", "0"])

    assert excinfo.value.code == 2


def test_fatal_errors_exit_with_one(database_uri: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--database-uri", database_uri, "frontier", "complete", "999", "failed"])

    assert excinfo.value.code == 1
