"""Where checkfuse keeps its SQLite store and the exported checklists."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from .env import optional_env_var

if TYPE_CHECKING:
    from uuid import UUID

DATA_DIR_ENV: Final[str] = "CHECKFUSE_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Layout below ``data_dir``: ``checkfuse.db`` and ``exports/fusion_<session>.json``."""

    data_dir: Path
    database_filename: str = "checkfuse.db"
    export_dirname: str = "exports"

    @property
    def root(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_uri(self) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{self.root / self.database_filename}"

    def export_dir(self, *, ensure: bool = True) -> Path:
        path = self.root / self.export_dirname
        if ensure:
            path.mkdir(parents=True, exist_ok=True)
        return path

    def export_path(self, session_id: UUID) -> Path:
        return self.export_dir() / f"fusion_{session_id}.json"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = optional_env_var("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = optional_env_var("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    configured = optional_env_var(DATA_DIR_ENV)
    return StorageConfig(
        data_dir=Path(configured) if configured else _platform_data_home() / "checkfuse"
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = optional_env_var(DATABASE_URI_ENV)
    if uri is None:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri)
