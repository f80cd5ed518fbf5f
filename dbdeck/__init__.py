"""Multi-backend database client core."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import BackendFamily, BackendKind, ConnectionDescriptor, CoreSettings, load_settings
from .errors import (
    ConnectFailureError,
    DbDeckError,
    MalformedCommandError,
    NativeExecutionError,
    NotConnectedError,
    UnsupportedBackendError,
    UnsupportedOperationError,
)
from .models import ColumnDescriptor, ColumnInfo, KeyInfo, QueryResult, SchemaEntry, TabularResult
from .surface import CommandSurface

__all__ = [
    "BackendFamily",
    "BackendKind",
    "ColumnDescriptor",
    "ColumnInfo",
    "CommandSurface",
    "ConnectFailureError",
    "ConnectionDescriptor",
    "CoreSettings",
    "DbDeckError",
    "KeyInfo",
    "MalformedCommandError",
    "NativeExecutionError",
    "NotConnectedError",
    "QueryResult",
    "SchemaEntry",
    "TabularResult",
    "UnsupportedBackendError",
    "UnsupportedOperationError",
    "__version__",
    "load_settings",
]
