"""Where the enrichment database lives and how the engine talks to it."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_flag

APP_DIR_NAME: Final[str] = "enricher"
DEFAULT_DB_FILENAME: Final[str] = "enricher.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def sqlite_uri(self) -> str:
        """URI of the local SQLite file; creates the data directory on first use."""

        path = self.database_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    data_dir = os.getenv("ENRICHER_DATA_DIR")
    return StorageConfig(
        data_dir=Path(data_dir) if data_dir else _platform_data_home() / APP_DIR_NAME,
        database_filename=os.getenv("ENRICHER_DB_FILENAME") or DEFAULT_DB_FILENAME,
    )


def get_database_config(
    *, storage: StorageConfig | None = None, uri: str | None = None
) -> DatabaseConfig:
    """An explicit ``uri``, then ``DATABASE_URI``, then a SQLite file in the data directory."""

    resolved = uri or os.getenv("DATABASE_URI") or (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=resolved, echo=env_flag("ENRICHER_SQL_ECHO"))
