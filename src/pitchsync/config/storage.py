"""Where the canonical store and the on-disk HTTP cache live.

``DATABASE_URI`` points the store anywhere SQLAlchemy can reach. Without it the
store is a SQLite file in the data directory (``PITCHSYNC_DATA_DIR``, falling
back to the platform's per-user data location).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "pitchsync"
DEFAULT_STORE_FILENAME: Final[str] = "canonical.db"
DEFAULT_HTTP_CACHE_FILENAME: Final[str] = "http-cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    store_filename: str = DEFAULT_STORE_FILENAME

    def ensure_data_dir(self) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def store_path(self) -> Path:
        return self.ensure_data_dir() / self.store_filename

    def http_cache_path(self) -> Path:
        return self.ensure_data_dir() / DEFAULT_HTTP_CACHE_FILENAME


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = os.getenv("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("PITCHSYNC_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    store_path = (storage or get_storage_config()).store_path()
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{store_path}")
