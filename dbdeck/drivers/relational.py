"""Relational driver backed by aiosqlite, asyncpg and aiomysql sessions."""

from __future__ import annotations

import logging
import ssl
from typing import Any, Awaitable, Callable, Protocol, Sequence

import aiomysql
import aiosqlite
import asyncpg
from pymysql.constants import FIELD_TYPE

from ..config import BackendFamily, BackendKind, ConnectionDescriptor, CoreSettings
from ..errors import ConnectFailureError, NativeExecutionError, UnsupportedBackendError
from ..models import ColumnInfo, SchemaEntry, TabularResult
from ..normalize import normalize_value, sqlite_storage_class

LOG = logging.getLogger(__name__)

NativeCell = tuple[str, str, Any]
"""Column name, native type label and raw value of one returned cell."""

NativeRow = Sequence[NativeCell]


class SqlSession(Protocol):
    """Engine-specific plumbing the relational driver delegates to."""

    schema_name: str | None

    async def fetch(self, sql: str) -> list[NativeRow]: ...

    async def execute(self, sql: str) -> None: ...

    async def list_entries(self) -> list[tuple[str, str]]: ...

    async def columns_for(self, table: str) -> list[ColumnInfo]: ...

    async def close(self) -> None: ...


class SqliteSession:
    """Embedded-file engine session; cell types are the values' storage classes."""

    _ENTRIES_QUERY = """
        SELECT name, type FROM (
            SELECT name, 'table' AS type FROM sqlite_master WHERE type = 'table'
            UNION ALL
            SELECT name, 'view' AS type FROM sqlite_master WHERE type = 'view'
        )
        ORDER BY name
    """

    schema_name = "main"

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    @classmethod
    async def connect(cls, descriptor: ConnectionDescriptor, *, timeout: float) -> SqliteSession:
        conn = await aiosqlite.connect(descriptor.database or ":memory:", timeout=timeout, isolation_level=None)
        return cls(conn)

    async def fetch(self, sql: str) -> list[NativeRow]:
        cursor = await self._conn.execute(sql)
        try:
            records = await cursor.fetchall()
            names = tuple(str(column[0]) for column in cursor.description or ())
        finally:
            await cursor.close()
        return [
            [(name, sqlite_storage_class(value), value) for name, value in zip(names, record)]
            for record in records
        ]

    async def execute(self, sql: str) -> None:
        await self._conn.executescript(sql)

    async def list_entries(self) -> list[tuple[str, str]]:
        async with self._conn.execute(self._ENTRIES_QUERY) as cursor:
            rows = await cursor.fetchall()
        return [(str(row[0]), str(row[1])) for row in rows]

    async def columns_for(self, table: str) -> list[ColumnInfo]:
        quoted = table.replace('"', '""')
        async with self._conn.execute(f'PRAGMA table_info("{quoted}")') as cursor:
            rows = await cursor.fetchall()
        # cid, name, type, notnull, dflt_value, pk
        return [
            ColumnInfo(
                name=str(row[1]),
                type=str(row[2] or ""),
                nullable=not bool(row[3]),
                default_value=None if row[4] is None else str(row[4]),
                is_primary_key=int(row[5] or 0) > 0,
            )
            for row in rows
        ]

    async def close(self) -> None:
        await self._conn.close()


class PostgresSession:
    """PostgreSQL session over a single asyncpg connection."""

    _ENTRIES_QUERY = """
        SELECT table_name, table_type
        FROM information_schema.tables
        WHERE table_schema = current_schema()
        ORDER BY table_name
    """

    # The flags column lists the constraint types the column takes part in.
    _COLUMNS_QUERY = """
        SELECT c.column_name, c.data_type, c.is_nullable, c.column_default,
               (
                   SELECT string_agg(tc.constraint_type, ', ')
                   FROM information_schema.key_column_usage k
                   JOIN information_schema.table_constraints tc
                     ON tc.constraint_name = k.constraint_name
                    AND tc.table_schema = k.table_schema
                    AND tc.table_name = k.table_name
                   WHERE k.table_schema = c.table_schema
                     AND k.table_name = c.table_name
                     AND k.column_name = c.column_name
               ) AS extra
        FROM information_schema.columns c
        WHERE c.table_schema = current_schema() AND c.table_name = $1
        ORDER BY c.ordinal_position
    """

    def __init__(self, conn: asyncpg.Connection, schema_name: str | None) -> None:
        self._conn = conn
        self.schema_name = schema_name

    @classmethod
    async def connect(cls, descriptor: ConnectionDescriptor, *, timeout: float) -> PostgresSession:
        kwargs: dict[str, object] = {
            "host": descriptor.host or "localhost",
            "port": descriptor.resolved_port(),
            "ssl": "require" if descriptor.tls else "disable",
            "timeout": timeout,
        }
        if descriptor.username:
            kwargs["user"] = descriptor.username
        if descriptor.password:
            kwargs["password"] = descriptor.password
        if descriptor.database:
            kwargs["database"] = descriptor.database
        conn = await asyncpg.connect(**kwargs)
        try:
            schema_name = await conn.fetchval("SELECT current_schema()")
        except Exception:
            await conn.close()
            raise
        return cls(conn, schema_name)

    async def fetch(self, sql: str) -> list[NativeRow]:
        statement = await self._conn.prepare(sql)
        records = await statement.fetch()
        attributes = statement.get_attributes()
        labels = [(attribute.name, attribute.type.name) for attribute in attributes]
        return [
            [(name, type_name, value) for (name, type_name), value in zip(labels, record)]
            for record in records
        ]

    async def execute(self, sql: str) -> None:
        await self._conn.execute(sql)

    async def list_entries(self) -> list[tuple[str, str]]:
        rows = await self._conn.fetch(self._ENTRIES_QUERY)
        return [(str(row[0]), str(row[1])) for row in rows]

    async def columns_for(self, table: str) -> list[ColumnInfo]:
        rows = await self._conn.fetch(self._COLUMNS_QUERY, table)
        return [_information_schema_column(row) for row in rows]

    async def close(self) -> None:
        await self._conn.close()


_MYSQL_TYPE_NAMES: dict[int, str] = {
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.LONG: "INT",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.VARCHAR: "VARCHAR",
    FIELD_TYPE.VAR_STRING: "VARCHAR",
    FIELD_TYPE.STRING: "CHAR",
    FIELD_TYPE.TINY_BLOB: "BLOB",
    FIELD_TYPE.MEDIUM_BLOB: "BLOB",
    FIELD_TYPE.LONG_BLOB: "BLOB",
    FIELD_TYPE.BLOB: "BLOB",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.DATETIME: "DATETIME",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    FIELD_TYPE.TIME: "TIME",
    FIELD_TYPE.ENUM: "ENUM",
    FIELD_TYPE.SET: "SET",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
    FIELD_TYPE.NULL: "NULL",
}


class MysqlSession:
    """MySQL / MariaDB session over a single aiomysql connection."""

    _ENTRIES_QUERY = """
        SELECT table_name, table_type
        FROM information_schema.tables
        WHERE table_schema = DATABASE()
        ORDER BY table_name
    """

    _COLUMNS_QUERY = """
        SELECT column_name, data_type, is_nullable, column_default, extra
        FROM information_schema.columns
        WHERE table_name = %s AND table_schema = DATABASE()
        ORDER BY ordinal_position
    """

    def __init__(self, conn: aiomysql.Connection, schema_name: str | None) -> None:
        self._conn = conn
        self.schema_name = schema_name

    @classmethod
    async def connect(cls, descriptor: ConnectionDescriptor, *, timeout: float) -> MysqlSession:
        kwargs: dict[str, object] = {
            "host": descriptor.host or "localhost",
            "port": descriptor.resolved_port(),
            "user": descriptor.username or None,
            "password": descriptor.password or "",
            "autocommit": True,
            "connect_timeout": timeout,
        }
        if descriptor.database:
            kwargs["db"] = descriptor.database
        if descriptor.tls:
            kwargs["ssl"] = ssl.create_default_context()
        conn = await aiomysql.connect(**kwargs)
        return cls(conn, descriptor.database or None)

    async def fetch(self, sql: str) -> list[NativeRow]:
        async with self._conn.cursor() as cursor:
            await cursor.execute(sql)
            records = await cursor.fetchall()
            description = cursor.description or ()
        labels = [(str(column[0]), _MYSQL_TYPE_NAMES.get(column[1], "UNKNOWN")) for column in description]
        return [
            [(name, type_name, value) for (name, type_name), value in zip(labels, record)]
            for record in records
        ]

    async def execute(self, sql: str) -> None:
        async with self._conn.cursor() as cursor:
            await cursor.execute(sql)

    async def list_entries(self) -> list[tuple[str, str]]:
        async with self._conn.cursor() as cursor:
            await cursor.execute(self._ENTRIES_QUERY)
            rows = await cursor.fetchall()
        return [(str(row[0]), str(row[1])) for row in rows]

    async def columns_for(self, table: str) -> list[ColumnInfo]:
        async with self._conn.cursor() as cursor:
            await cursor.execute(self._COLUMNS_QUERY, (table,))
            rows = await cursor.fetchall()
        return [_information_schema_column(row) for row in rows]

    async def close(self) -> None:
        self._conn.close()


SessionOpener = Callable[..., Awaitable[SqlSession]]

_SESSION_OPENERS: dict[BackendKind, SessionOpener] = {
    BackendKind.SQLITE: SqliteSession.connect,
    BackendKind.POSTGRESQL: PostgresSession.connect,
    BackendKind.MYSQL: MysqlSession.connect,
    BackendKind.MARIADB: MysqlSession.connect,
}


class RelationalDriver:
    """Runs literal SQL and catalog introspection against one relational engine."""

    family = BackendFamily.RELATIONAL

    def __init__(self, descriptor: ConnectionDescriptor, session: SqlSession) -> None:
        self._descriptor = descriptor
        self._session = session
        self.kind = descriptor.backend_kind()

    @classmethod
    async def open(cls, descriptor: ConnectionDescriptor, settings: CoreSettings) -> RelationalDriver:
        kind = descriptor.backend_kind()
        opener = _SESSION_OPENERS.get(kind)
        if opener is None:
            raise UnsupportedBackendError(f"Unsupported database type: {descriptor.kind}")
        try:
            session = await opener(descriptor, timeout=settings.connect_timeout)
        except Exception as exc:
            raise ConnectFailureError(str(exc)) from exc
        LOG.debug("Opened relational session", extra={"connection_id": descriptor.id, "kind": kind.value})
        return cls(descriptor, session)

    async def execute_query(self, sql: str) -> TabularResult:
        """Send ``sql`` unmodified and normalize every returned cell."""

        try:
            native_rows = await self._session.fetch(sql)
        except Exception as exc:
            raise NativeExecutionError(str(exc)) from exc
        return tabulate_native_rows(native_rows)

    async def get_schema(self) -> list[SchemaEntry]:
        try:
            entries = await self._session.list_entries()
            schema: list[SchemaEntry] = []
            for name, entry_type in entries:
                columns = await self._session.columns_for(name)
                schema.append(
                    SchemaEntry(
                        name=name,
                        kind=entry_kind(entry_type),
                        schema=self._session.schema_name,
                        columns=tuple(columns),
                    )
                )
        except Exception as exc:
            raise NativeExecutionError(str(exc)) from exc
        return schema

    async def execute_ddl(self, sql: str) -> None:
        try:
            await self._session.execute(sql)
        except Exception as exc:
            raise NativeExecutionError(str(exc)) from exc

    async def close(self) -> None:
        await self._session.close()


def tabulate_native_rows(native_rows: Sequence[NativeRow]) -> TabularResult:
    """Columns come from the first row; each cell is normalized with its own native type."""

    if not native_rows:
        return TabularResult()
    columns = [(name, type_name) for name, type_name, _ in native_rows[0]]
    rows = [
        [normalize_value(value, type_name) for _, type_name, value in row]
        for row in native_rows
    ]
    return TabularResult.build(columns, rows)


def entry_kind(entry_type: str) -> str:
    if entry_type == "view" or "VIEW" in entry_type:
        return "view"
    return "table"


def _information_schema_column(row: Sequence[Any]) -> ColumnInfo:
    # column_name, data_type, is_nullable, column_default, extra
    extra = row[4]
    return ColumnInfo(
        name=str(row[0]),
        type=str(row[1]),
        nullable=row[2] == "YES",
        default_value=None if row[3] is None else str(row[3]),
        is_primary_key=extra is not None and "PRIMARY KEY" in str(extra),
    )


__all__ = [
    "MysqlSession",
    "NativeCell",
    "NativeRow",
    "PostgresSession",
    "RelationalDriver",
    "SqlSession",
    "SqliteSession",
    "entry_kind",
    "tabulate_native_rows",
]
