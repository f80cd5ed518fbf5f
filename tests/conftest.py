"""Shared fakes for the document and key-value native clients."""

from __future__ import annotations

import fnmatch
from typing import Any

import pytest
from bson import ObjectId
from redis.exceptions import ResponseError


class FakeMongoCollection:
    def __init__(self) -> None:
        self.documents: list[dict[str, Any]] = []
        self.last_filter: dict[str, Any] | None = None

    def insert(self, document: dict[str, Any]) -> ObjectId:
        stored = dict(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return stored["_id"]

    def find(self, filter_doc: dict[str, Any]):
        self.last_filter = filter_doc
        matches = [
            doc
            for doc in self.documents
            if all(doc.get(key) == value for key, value in filter_doc.items())
        ]

        async def _cursor():
            for doc in matches:
                yield doc

        return _cursor()

    async def count_documents(self, filter_doc: dict[str, Any]) -> int:
        return len(self.documents)


class FakeMongoDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self.collections: dict[str, FakeMongoCollection] = {}

    def __getitem__(self, name: str) -> FakeMongoCollection:
        return self.collections.setdefault(name, FakeMongoCollection())

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)


class FakeMongoClient:
    def __init__(self, uri: str, **options: Any) -> None:
        self.uri = uri
        self.options = options
        self.closed = False
        self.databases: dict[str, FakeMongoDatabase] = {}

    def __getitem__(self, name: str) -> FakeMongoDatabase:
        return self.databases.setdefault(name, FakeMongoDatabase(name))

    async def close(self) -> None:
        self.closed = True


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with decoded responses."""

    def __init__(self, ping_reply: Any = True, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.ping_reply = ping_reply
        self.closed = False
        self.strings: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.sets: dict[str, set[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.expiry: dict[str, int] = {}
        self.commands: list[tuple[str, ...]] = []

    async def ping(self) -> Any:
        return self.ping_reply

    async def aclose(self) -> None:
        self.closed = True

    async def type(self, key: str) -> str:
        for name, store in (
            ("string", self.strings),
            ("list", self.lists),
            ("hash", self.hashes),
            ("set", self.sets),
            ("zset", self.zsets),
        ):
            if key in store:
                return name
        return "none"

    async def get(self, key: str) -> str | None:
        return self.strings.get(key)

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        return list(self.lists.get(key, []))

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def smembers(self, key: str) -> set[str]:
        return set(self.sets.get(key, set()))

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list[tuple[str, float]]:
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]))
        return [(member, float(score)) for member, score in members]

    async def keys(self, pattern: str) -> list[str]:
        names = [*self.strings, *self.lists, *self.hashes, *self.sets, *self.zsets]
        return [name for name in names if fnmatch.fnmatchcase(name, pattern)]

    async def strlen(self, key: str) -> int:
        return len(self.strings.get(key, ""))

    async def llen(self, key: str) -> int:
        return len(self.lists.get(key, []))

    async def scard(self, key: str) -> int:
        return len(self.sets.get(key, set()))

    async def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    async def hlen(self, key: str) -> int:
        return len(self.hashes.get(key, {}))

    async def ttl(self, key: str) -> int:
        if await self.type(key) == "none":
            return -2
        return self.expiry.get(key, -1)

    async def execute_command(self, *args: str) -> Any:
        self.commands.append(tuple(args))
        name = args[0].upper()
        params = args[1:]
        if name == "SET":
            if len(params) != 2:
                raise ResponseError("wrong number of arguments for 'set' command")
            self._drop(params[0])
            self.strings[params[0]] = params[1]
            return True
        if name == "RPUSH":
            self.lists.setdefault(params[0], []).extend(params[1:])
            return len(self.lists[params[0]])
        if name == "HSET":
            fields = self.hashes.setdefault(params[0], {})
            pairs = params[1:]
            for index in range(0, len(pairs), 2):
                fields[pairs[index]] = pairs[index + 1]
            return len(pairs) // 2
        if name == "SADD":
            self.sets.setdefault(params[0], set()).update(params[1:])
            return len(params) - 1
        if name == "ZADD":
            members = self.zsets.setdefault(params[0], {})
            pairs = params[1:]
            for index in range(0, len(pairs), 2):
                members[pairs[index + 1]] = float(pairs[index])
            return len(pairs) // 2
        if name == "EXPIRE":
            self.expiry[params[0]] = int(params[1])
            return 1
        if name == "DEL":
            for key in params:
                self._drop(key)
            return len(params)
        raise ResponseError(f"unknown command '{args[0]}'")

    def _drop(self, key: str) -> None:
        for store in (self.strings, self.lists, self.hashes, self.sets, self.zsets, self.expiry):
            store.pop(key, None)


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> list[FakeRedis]:
    """Patch the key-value driver's client; returns every client it creates."""

    created: list[FakeRedis] = []

    def _factory(**kwargs: Any) -> FakeRedis:
        client = FakeRedis(**kwargs)
        created.append(client)
        return client

    monkeypatch.setattr("dbdeck.drivers.keyvalue.Redis", _factory)
    return created


@pytest.fixture
def fake_mongo(monkeypatch: pytest.MonkeyPatch) -> list[FakeMongoClient]:
    """Patch the document driver's client; returns every client it creates."""

    created: list[FakeMongoClient] = []

    def _factory(uri: str, **options: Any) -> FakeMongoClient:
        client = FakeMongoClient(uri, **options)
        created.append(client)
        return client

    monkeypatch.setattr("dbdeck.drivers.document.AsyncMongoClient", _factory)
    return created


@pytest.fixture
def fake_redis_cls() -> type[FakeRedis]:
    """The stand-in class, for tests that install their own client factory."""

    return FakeRedis
