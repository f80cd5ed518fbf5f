"""Connection descriptors and core settings loading helpers."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import tomllib

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnsupportedBackendError

CONFIG_FILE = Path.home() / ".config" / "dbdeck" / "config.toml"


class BackendFamily(str, Enum):
    """Engine families, each served by one driver."""

    RELATIONAL = "relational"
    DOCUMENT = "document"
    KEY_VALUE = "key_value"


class BackendKind(str, Enum):
    """Backend kinds accepted in ``ConnectionDescriptor.kind``."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    MONGODB = "mongodb"
    REDIS = "redis"

    @property
    def family(self) -> BackendFamily:
        if self is BackendKind.MONGODB:
            return BackendFamily.DOCUMENT
        if self is BackendKind.REDIS:
            return BackendFamily.KEY_VALUE
        return BackendFamily.RELATIONAL

    @property
    def default_port(self) -> int | None:
        return _DEFAULT_PORTS.get(self)


_DEFAULT_PORTS: dict[BackendKind, int] = {
    BackendKind.POSTGRESQL: 5432,
    BackendKind.MYSQL: 3306,
    BackendKind.MARIADB: 3306,
    BackendKind.MONGODB: 27017,
    BackendKind.REDIS: 6379,
}


class ConnectionDescriptor(BaseModel):
    """Caller-supplied connection parameters; immutable once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    kind: str = Field(alias="type")
    host: str = "localhost"
    port: int | None = None
    database: str = ""
    username: str = ""
    password: str | None = None
    tls: bool = Field(default=False, alias="ssl")

    def backend_kind(self) -> BackendKind:
        """Resolve ``kind`` or raise ``UnsupportedBackendError``."""

        try:
            return BackendKind(self.kind.lower())
        except ValueError:
            raise UnsupportedBackendError(f"Unsupported database type: {self.kind}") from None

    def resolved_port(self) -> int | None:
        if self.port is not None:
            return self.port
        return self.backend_kind().default_port

    @property
    def label(self) -> str:
        return self.name or self.id


class CoreSettings(BaseModel):
    """Tunables for the command surface, read from config.toml."""

    connect_timeout: float = 5.0
    history_size: int = Field(default=500, ge=0)
    default_key_pattern: str = "*"
    log_level: str = "WARNING"


def load_settings(path: Path | None = None) -> CoreSettings:
    """Load settings from disk; fall back to defaults if missing or unreadable."""

    try:
        data = _read_settings_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return CoreSettings()
    except (tomllib.TOMLDecodeError, OSError):
        return CoreSettings()
    return CoreSettings(**data)


def _read_settings_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    section = raw.get("core", raw)
    data: dict[str, object] = {}
    if not isinstance(section, dict):
        return data
    timeout = section.get("connect_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        data["connect_timeout"] = float(timeout)
    history_size = section.get("history_size")
    if isinstance(history_size, int) and not isinstance(history_size, bool) and history_size >= 0:
        data["history_size"] = history_size
    for key in ("default_key_pattern", "log_level"):
        value = section.get(key)
        if isinstance(value, str) and value:
            data[key] = value
    return data


__all__ = [
    "BackendFamily",
    "BackendKind",
    "CONFIG_FILE",
    "ConnectionDescriptor",
    "CoreSettings",
    "load_settings",
]
