"""Key-value driver over redis.asyncio with type-aware reads."""

from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..commands import parse_keyvalue_command
from ..config import BackendFamily, BackendKind, ConnectionDescriptor, CoreSettings
from ..errors import ConnectFailureError, NativeExecutionError
from ..models import ColumnInfo, KeyInfo, SchemaEntry, TabularResult
from ..normalize import normalize_value

LOG = logging.getLogger(__name__)

# Key type -> client method returning its size metric.
_SIZE_METHODS: dict[str, str] = {
    "string": "strlen",
    "list": "llen",
    "set": "scard",
    "zset": "zcard",
    "hash": "hlen",
}

_OK_RESULT = TabularResult.build([("OK", "String")], [["OK"]])


class KeyValueDriver:
    """Executes whitespace-tokenized commands and typed key reads."""

    family = BackendFamily.KEY_VALUE
    kind = BackendKind.REDIS

    def __init__(self, descriptor: ConnectionDescriptor, client: Any) -> None:
        self._descriptor = descriptor
        self._client = client

    @classmethod
    async def open(cls, descriptor: ConnectionDescriptor, settings: CoreSettings) -> KeyValueDriver:
        db = database_index(descriptor.database)
        client = Redis(
            host=descriptor.host or "localhost",
            port=descriptor.resolved_port() or 6379,
            db=db,
            username=descriptor.username or None,
            password=descriptor.password or None,
            ssl=descriptor.tls,
            socket_connect_timeout=settings.connect_timeout,
            decode_responses=True,
        )
        try:
            reply = await client.ping()
        except RedisError as exc:
            await client.aclose()
            raise ConnectFailureError(str(exc)) from exc
        if reply is not True:
            await client.aclose()
            raise ConnectFailureError(f"Unexpected PING reply: {reply!r}")
        LOG.debug("Opened key-value client", extra={"connection_id": descriptor.id, "db": db})
        return cls(descriptor, client)

    async def get_value(self, key: str) -> TabularResult:
        """Read ``key`` with the command matching its native type."""

        try:
            key_type = await self._client.type(key)
            if key_type == "string":
                value = await self._client.get(key)
                return TabularResult.build(
                    [("key", "String"), ("value", "String")],
                    [[key, normalize_value(value, "TEXT")]],
                )
            if key_type == "list":
                values = await self._client.lrange(key, 0, -1)
                return TabularResult.build(
                    [("index", "Int"), ("value", "String")],
                    [[index, normalize_value(value, "TEXT")] for index, value in enumerate(values, start=1)],
                )
            if key_type == "hash":
                entries = await self._client.hgetall(key)
                return TabularResult.build(
                    [("field", "String"), ("value", "String")],
                    [[field, normalize_value(value, "TEXT")] for field, value in entries.items()],
                )
            if key_type == "set":
                members = await self._client.smembers(key)
                return TabularResult.build(
                    [("member", "String")],
                    [[normalize_value(member, "TEXT")] for member in members],
                )
            if key_type == "zset":
                scored = await self._client.zrange(key, 0, -1, withscores=True)
                return TabularResult.build(
                    [("member", "String"), ("score", "Double")],
                    [[normalize_value(member, "TEXT"), normalize_value(score, "DOUBLE")] for member, score in scored],
                )
        except RedisError as exc:
            raise NativeExecutionError(str(exc)) from exc
        return TabularResult.build([("error", "String")], [[f"Unsupported type: {key_type}"]])

    async def list_keys(self, pattern: str = "*") -> list[KeyInfo]:
        """Summarize every key matching ``pattern`` with its type, size and TTL."""

        try:
            keys = await self._client.keys(pattern)
            infos: list[KeyInfo] = []
            for key in keys:
                key_type = await self._client.type(key)
                method = _SIZE_METHODS.get(key_type)
                size = int(await getattr(self._client, method)(key)) if method else 0
                ttl = int(await self._client.ttl(key))
                # -1 means no expiry, -2 means the key vanished since KEYS.
                infos.append(KeyInfo(name=key, type=key_type, size=size, ttl=ttl if ttl >= 0 else None))
        except RedisError as exc:
            raise NativeExecutionError(str(exc)) from exc
        return infos

    async def execute_command(self, text: str) -> TabularResult:
        command = parse_keyvalue_command(text)
        try:
            await self._client.execute_command(*command.tokens)
        except RedisError as exc:
            raise NativeExecutionError(str(exc)) from exc
        return _OK_RESULT

    async def get_schema(self) -> list[SchemaEntry]:
        keys = await self.list_keys("*")
        return [
            SchemaEntry(
                name="keys",
                kind="redis_keys",
                schema=self._descriptor.database,
                columns=(
                    ColumnInfo(name="name", type="String", nullable=False, is_primary_key=True),
                    ColumnInfo(name="type", type="String", nullable=False),
                    ColumnInfo(name="size", type="Int", nullable=False),
                ),
                row_count=len(keys),
            )
        ]

    async def execute_ddl(self, text: str) -> None:
        await self.execute_command(text)

    async def close(self) -> None:
        await self._client.aclose()


def database_index(database: str) -> int:
    """Numeric database index from the descriptor's database name; empty means 0."""

    text = database.strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        raise ConnectFailureError(f"Invalid Redis database index: {database!r}") from None


__all__ = ["KeyValueDriver", "database_index"]
