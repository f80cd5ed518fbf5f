"""Command surface consumed by GUI/CLI shells."""

from __future__ import annotations

import logging
import time

from . import router
from .config import ConnectionDescriptor, CoreSettings
from .drivers import KeyValueDriver
from .errors import DbDeckError, UnsupportedOperationError
from .history import QueryHistory
from .models import KeyInfo, QueryResult, SchemaEntry, TabularResult
from .registry import ConnectionRegistry

LOG = logging.getLogger(__name__)


class CommandSurface:
    """Request/response boundary: connect, run commands, introspect, disconnect."""

    def __init__(
        self,
        settings: CoreSettings | None = None,
        *,
        registry: ConnectionRegistry | None = None,
        history: QueryHistory | None = None,
    ) -> None:
        self._settings = settings or CoreSettings()
        self._registry = registry if registry is not None else ConnectionRegistry()
        self._history = history if history is not None else QueryHistory(self._settings.history_size)

    @property
    def settings(self) -> CoreSettings:
        return self._settings

    @property
    def history(self) -> QueryHistory:
        """Commands executed through ``execute_query``, newest first."""

        return self._history

    @property
    def connection_ids(self) -> tuple[str, ...]:
        return self._registry.identifiers()

    async def connect(self, descriptor: ConnectionDescriptor) -> None:
        """Open and register a connection, replacing any with the same identifier."""

        connection = await router.open_connection(descriptor, self._settings)
        await self._registry.replace(descriptor.id, connection)
        LOG.info(
            "Connected",
            extra={"connection_id": descriptor.id, "kind": descriptor.kind, "label": descriptor.label},
        )

    async def disconnect(self, identifier: str) -> None:
        await self._registry.remove(identifier)
        LOG.info("Disconnected", extra={"connection_id": identifier})

    async def execute_query(self, identifier: str, text: str) -> QueryResult:
        """Run ``text`` and return the normalized result with timing."""

        started = time.perf_counter()
        try:
            async with self._registry.access(identifier) as connection:
                result = await router.execute(connection, text)
        except DbDeckError as exc:
            self._history.record(identifier, text, elapsed_ms=_elapsed_ms(started), error=str(exc))
            LOG.debug("Command failed", extra={"connection_id": identifier, "error": str(exc)})
            raise
        elapsed_ms = _elapsed_ms(started)
        self._history.record(identifier, text, elapsed_ms=elapsed_ms)
        LOG.debug(
            "Command executed",
            extra={"connection_id": identifier, "elapsed_ms": elapsed_ms, "rows": result.row_count},
        )
        return QueryResult.from_tabular(result, elapsed_ms=elapsed_ms)

    async def get_schema(self, identifier: str) -> list[SchemaEntry]:
        async with self._registry.access(identifier) as connection:
            return await router.introspect(connection)

    async def execute_ddl(self, identifier: str, text: str) -> None:
        async with self._registry.access(identifier) as connection:
            await router.execute_ddl(connection, text)

    async def get_value(self, identifier: str, key: str) -> TabularResult:
        """Type-aware read of one key on a key-value connection."""

        async with self._registry.access(identifier) as connection:
            if not isinstance(connection, KeyValueDriver):
                raise UnsupportedOperationError("Key reads require a key-value connection")
            return await connection.get_value(key)

    async def list_keys(self, identifier: str, pattern: str | None = None) -> list[KeyInfo]:
        async with self._registry.access(identifier) as connection:
            if not isinstance(connection, KeyValueDriver):
                raise UnsupportedOperationError("Key listing requires a key-value connection")
            return await connection.list_keys(pattern or self._settings.default_key_pattern)

    async def close(self) -> None:
        """Close every live connection."""

        await self._registry.close_all()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = ["CommandSurface"]
