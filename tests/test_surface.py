"""End-to-end tests for the command surface."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from dbdeck import CommandSurface
from dbdeck.config import ConnectionDescriptor, CoreSettings
from dbdeck.errors import (
    MalformedCommandError,
    NativeExecutionError,
    NotConnectedError,
    UnsupportedBackendError,
    UnsupportedOperationError,
)
from dbdeck.history import QueryHistory


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def surface(anyio_backend: str):
    surface = CommandSurface(CoreSettings(history_size=5))
    try:
        yield surface
    finally:
        await surface.close()


def _sqlite(tmp_path: Path, identifier: str = "lite", filename: str = "app.db") -> ConnectionDescriptor:
    return ConnectionDescriptor(id=identifier, kind="sqlite", database=str(tmp_path / filename))


@pytest.mark.anyio
async def test_sqlite_round_trip(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))
    await surface.execute_ddl("lite", "CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
    await surface.execute_query("lite", "INSERT INTO t (id, name) VALUES (1, 'one'), (2, 'two')")

    result = await surface.execute_query("lite", "SELECT * FROM t ORDER BY id")

    assert result.columns == ("id", "name")
    assert result.rows == ((1, "one"), (2, "two"))
    assert result.row_count == 2
    assert result.affected_rows == 0
    assert result.error is None
    assert result.elapsed_ms >= 0


@pytest.mark.anyio
async def test_sqlite_schema(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))
    await surface.execute_ddl(
        "lite",
        "CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT NOT NULL); CREATE VIEW v AS SELECT name FROM t",
    )

    schema = {entry.name: entry for entry in await surface.get_schema("lite")}

    assert (schema["t"].kind, schema["v"].kind) == ("table", "view")
    id_column, name_column = schema["t"].columns
    assert id_column.is_primary_key is True
    assert name_column.nullable is False


@pytest.mark.anyio
async def test_document_find_accretes_columns(surface: CommandSurface, fake_mongo: list[Any]) -> None:
    await surface.connect(ConnectionDescriptor(id="docs", kind="mongodb", database="shop"))

    empty = await surface.execute_query("docs", "orders.find({})")
    assert empty.columns == ("_id",)
    assert empty.rows == ()

    fake_mongo[-1]["shop"]["orders"].insert({"a": 1})
    result = await surface.execute_query("docs", "orders.find({})")

    assert result.columns == ("_id", "a")
    assert result.row_count == 1
    assert result.rows[0][1] == 1


@pytest.mark.anyio
async def test_keyvalue_set_then_read(surface: CommandSurface, fake_redis: list[Any]) -> None:
    await surface.connect(ConnectionDescriptor(id="cache", kind="redis"))

    ok = await surface.execute_query("cache", "SET k v")
    value = await surface.get_value("cache", "k")
    keys = await surface.list_keys("cache")

    assert ok.columns == ("OK",)
    assert value.column_names == ("key", "value")
    assert value.rows == (("k", "v"),)
    assert [(key.name, key.type, key.size, key.ttl) for key in keys] == [("k", "string", 1, None)]


@pytest.mark.anyio
async def test_list_keys_uses_configured_default_pattern(fake_redis: list[Any]) -> None:
    surface = CommandSurface(CoreSettings(default_key_pattern="user:*"))
    await surface.connect(ConnectionDescriptor(id="cache", kind="redis"))
    await surface.execute_query("cache", "SET user:1 ada")
    await surface.execute_query("cache", "SET order:1 x")

    keys = await surface.list_keys("cache")
    await surface.close()

    assert [key.name for key in keys] == ["user:1"]


@pytest.mark.anyio
async def test_key_operations_require_keyvalue_connection(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))

    with pytest.raises(UnsupportedOperationError):
        await surface.get_value("lite", "k")
    with pytest.raises(UnsupportedOperationError):
        await surface.list_keys("lite")


@pytest.mark.anyio
async def test_reconnect_replaces_previous_connection(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path, filename="first.db"))
    await surface.execute_ddl("lite", "CREATE TABLE only_in_first (x INTEGER)")

    await surface.connect(_sqlite(tmp_path, filename="second.db"))

    assert surface.connection_ids == ("lite",)
    assert await surface.get_schema("lite") == []


@pytest.mark.anyio
async def test_disconnect_is_idempotent(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))

    await surface.disconnect("lite")
    await surface.disconnect("lite")

    assert surface.connection_ids == ()
    with pytest.raises(NotConnectedError, match="Not connected"):
        await surface.execute_query("lite", "SELECT 1")


@pytest.mark.anyio
async def test_unknown_identifier_is_not_connected(surface: CommandSurface) -> None:
    with pytest.raises(NotConnectedError, match="Not connected"):
        await surface.get_schema("nope")
    with pytest.raises(NotConnectedError):
        await surface.execute_ddl("nope", "SELECT 1")


@pytest.mark.anyio
async def test_unsupported_backend_registers_nothing(surface: CommandSurface) -> None:
    with pytest.raises(UnsupportedBackendError, match="Unsupported database type: oracle"):
        await surface.connect(ConnectionDescriptor(id="ora", kind="oracle"))

    assert surface.connection_ids == ()


@pytest.mark.anyio
async def test_history_records_success_and_failure(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))

    await surface.execute_query("lite", "SELECT 1")
    with pytest.raises(NativeExecutionError):
        await surface.execute_query("lite", "SELECT * FROM missing_table")
    with pytest.raises(NotConnectedError):
        await surface.execute_query("ghost", "SELECT 1")

    latest, failed, succeeded = surface.history.entries()
    assert (succeeded.command, succeeded.success, succeeded.error) == ("SELECT 1", True, None)
    assert failed.success is False
    assert "missing_table" in (failed.error or "")
    assert (latest.connection_id, latest.error) == ("ghost", "Not connected")
    assert [entry.command for entry in surface.history.entries("lite")] == [
        "SELECT * FROM missing_table",
        "SELECT 1",
    ]


@pytest.mark.anyio
async def test_history_honours_configured_size(surface: CommandSurface, tmp_path: Path) -> None:
    await surface.connect(_sqlite(tmp_path))

    for index in range(8):
        await surface.execute_query("lite", f"SELECT {index}")

    assert len(surface.history) == 5
    assert surface.history.entries()[0].command == "SELECT 7"


@pytest.mark.anyio
async def test_injected_history_is_used(tmp_path: Path) -> None:
    history = QueryHistory(max_size=2)
    surface = CommandSurface(history=history)
    await surface.connect(_sqlite(tmp_path))

    await surface.execute_query("lite", "SELECT 1")
    await surface.close()

    assert surface.history is history
    assert len(history) == 1


@pytest.mark.anyio
async def test_malformed_document_command_surfaces_error(surface: CommandSurface, fake_mongo: list[Any]) -> None:
    await surface.connect(ConnectionDescriptor(id="docs", kind="mongodb", database="shop"))

    with pytest.raises(MalformedCommandError):
        await surface.execute_query("docs", "orders")


@pytest.mark.anyio
async def test_invalid_extended_json_filter_is_malformed_and_recorded(
    surface: CommandSurface, fake_mongo: list[Any]
) -> None:
    await surface.connect(ConnectionDescriptor(id="docs", kind="mongodb", database="shop"))
    command = 'orders.find({"a": {"$numberDecimal": "xx"}})'

    with pytest.raises(MalformedCommandError):
        await surface.execute_query("docs", command)

    (entry,) = surface.history.entries()
    assert (entry.command, entry.success) == (command, False)
