"""Document driver speaking the dotted collection-command notation over pymongo."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote_plus

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..commands import DocumentOperation, parse_document_command
from ..config import BackendFamily, BackendKind, ConnectionDescriptor, CoreSettings
from ..errors import ConnectFailureError, NativeExecutionError
from ..models import ColumnInfo, GenericValue, SchemaEntry, TabularResult
from ..normalize import document_type_label, normalize_document

LOG = logging.getLogger(__name__)

ID_FIELD = "_id"


class DocumentDriver:
    """Runs ``<collection>.find(...)`` / ``<collection>.count()`` commands."""

    family = BackendFamily.DOCUMENT
    kind = BackendKind.MONGODB

    def __init__(self, descriptor: ConnectionDescriptor, client: Any) -> None:
        self._descriptor = descriptor
        self._client = client
        self._database = client[descriptor.database]

    @classmethod
    async def open(cls, descriptor: ConnectionDescriptor, settings: CoreSettings) -> DocumentDriver:
        options: dict[str, object] = {"serverSelectionTimeoutMS": int(settings.connect_timeout * 1000)}
        if descriptor.tls:
            options["tls"] = True
        try:
            client = AsyncMongoClient(mongo_uri(descriptor), **options)
        except Exception as exc:
            raise ConnectFailureError(str(exc)) from exc
        try:
            driver = cls(descriptor, client)
        except Exception as exc:
            await client.close()
            raise ConnectFailureError(str(exc)) from exc
        LOG.debug("Opened document client", extra={"connection_id": descriptor.id})
        return driver

    async def execute(self, text: str) -> TabularResult:
        command = parse_document_command(text)
        try:
            collection = self._database[command.collection]
            if command.operation is DocumentOperation.FIND:
                return await self._find(collection, command.filter)
            count = await collection.count_documents({})
        except PyMongoError as exc:
            raise NativeExecutionError(str(exc)) from exc
        return TabularResult.build([("count", "Int64")], [[int(count)]])

    async def get_schema(self) -> list[SchemaEntry]:
        try:
            names = await self._database.list_collection_names()
        except PyMongoError as exc:
            raise NativeExecutionError(str(exc)) from exc
        id_column = ColumnInfo(name=ID_FIELD, type="ObjectId", nullable=False, is_primary_key=True)
        return [
            SchemaEntry(
                name=name,
                kind="collection",
                schema=self._descriptor.database,
                columns=(id_column,),
            )
            for name in names
        ]

    async def execute_ddl(self, text: str) -> None:
        await self.execute(text)

    async def close(self) -> None:
        await self._client.close()

    async def _find(self, collection: Any, filter_doc: Mapping[str, Any]) -> TabularResult:
        # Columns accrete in first-seen order; earlier rows are padded at the end.
        columns: list[tuple[str, str]] = [(ID_FIELD, "ObjectId")]
        seen = {ID_FIELD}
        rows: list[list[GenericValue]] = []
        async for document in collection.find(dict(filter_doc)):
            data = normalize_document(document)
            for key, value in data.items():
                if key in seen:
                    continue
                seen.add(key)
                columns.append((key, document_type_label(value)))
            rows.append([data.get(name) for name, _ in columns])
        width = len(columns)
        padded = [row + [None] * (width - len(row)) for row in rows]
        return TabularResult.build(columns, padded)


def mongo_uri(descriptor: ConnectionDescriptor) -> str:
    host = descriptor.host or "localhost"
    port = descriptor.resolved_port()
    if not descriptor.username:
        return f"mongodb://{host}:{port}/{descriptor.database}"
    user = quote_plus(descriptor.username)
    password = quote_plus(descriptor.password or "")
    return f"mongodb://{user}:{password}@{host}:{port}/{descriptor.database}"


__all__ = ["DocumentDriver", "ID_FIELD", "mongo_uri"]
