"""Dispatch commands to the driver matching a live connection's variant."""

from __future__ import annotations

from typing import assert_never

from .config import BackendFamily, ConnectionDescriptor, CoreSettings
from .drivers import DocumentDriver, KeyValueDriver, RelationalDriver
from .models import SchemaEntry, TabularResult

LiveConnection = RelationalDriver | DocumentDriver | KeyValueDriver


async def open_connection(descriptor: ConnectionDescriptor, settings: CoreSettings) -> LiveConnection:
    """Open the driver for the descriptor's backend kind."""

    family = descriptor.backend_kind().family
    if family is BackendFamily.RELATIONAL:
        return await RelationalDriver.open(descriptor, settings)
    if family is BackendFamily.DOCUMENT:
        return await DocumentDriver.open(descriptor, settings)
    if family is BackendFamily.KEY_VALUE:
        return await KeyValueDriver.open(descriptor, settings)
    assert_never(family)


async def execute(connection: LiveConnection, text: str) -> TabularResult:
    """Run ``text`` with the parse strategy of the connection's backend."""

    if isinstance(connection, RelationalDriver):
        return await connection.execute_query(text)
    if isinstance(connection, DocumentDriver):
        return await connection.execute(text)
    if isinstance(connection, KeyValueDriver):
        return await connection.execute_command(text)
    assert_never(connection)


async def introspect(connection: LiveConnection) -> list[SchemaEntry]:
    if isinstance(connection, RelationalDriver):
        return await connection.get_schema()
    if isinstance(connection, DocumentDriver):
        return await connection.get_schema()
    if isinstance(connection, KeyValueDriver):
        return await connection.get_schema()
    assert_never(connection)


async def execute_ddl(connection: LiveConnection, text: str) -> None:
    """Same execution path as ``execute`` with any rows discarded."""

    if isinstance(connection, RelationalDriver):
        await connection.execute_ddl(text)
    elif isinstance(connection, DocumentDriver):
        await connection.execute_ddl(text)
    elif isinstance(connection, KeyValueDriver):
        await connection.execute_ddl(text)
    else:
        assert_never(connection)


__all__ = ["LiveConnection", "execute", "execute_ddl", "introspect", "open_connection"]
