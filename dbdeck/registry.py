"""Concurrent registry owning live connections by identifier."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from .errors import NotConnectedError
from .router import LiveConnection

LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class _Slot:
    """Exclusive holder for one identifier's connection."""

    connection: LiveConnection | None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ConnectionRegistry:
    """Maps identifiers to live connections; work on one identifier is serialized.

    The registry lock only guards the identifier map. Each slot carries its
    own lock so that commands against different identifiers run concurrently
    while commands against the same identifier run one at a time, in the
    order they acquire the slot.
    """

    def __init__(self) -> None:
        self._slots: dict[str, _Slot] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._slots

    def identifiers(self) -> tuple[str, ...]:
        return tuple(self._slots)

    async def replace(self, identifier: str, connection: LiveConnection) -> None:
        """Register ``connection``, closing any connection it displaces."""

        async with self._lock:
            previous = self._slots.get(identifier)
            self._slots[identifier] = _Slot(connection)
        if previous is not None:
            LOG.debug("Replacing live connection", extra={"connection_id": identifier})
            await self._retire(identifier, previous)

    async def remove(self, identifier: str) -> None:
        """Drop and close the connection; unknown identifiers are a no-op."""

        async with self._lock:
            slot = self._slots.pop(identifier, None)
        if slot is not None:
            await self._retire(identifier, slot)

    async def close_all(self) -> None:
        async with self._lock:
            slots = list(self._slots.items())
            self._slots.clear()
        for identifier, slot in slots:
            await self._retire(identifier, slot)

    @asynccontextmanager
    async def access(self, identifier: str) -> AsyncIterator[LiveConnection]:
        """Hold the identifier's slot for the duration of the block."""

        while True:
            slot = await self._lookup(identifier)
            await slot.lock.acquire()
            if slot.connection is not None:
                break
            # Replaced while waiting; retry against the current slot.
            slot.lock.release()
        try:
            yield slot.connection
        finally:
            slot.lock.release()

    async def _lookup(self, identifier: str) -> _Slot:
        async with self._lock:
            slot = self._slots.get(identifier)
        if slot is None:
            raise NotConnectedError()
        return slot

    async def _retire(self, identifier: str, slot: _Slot) -> None:
        async with slot.lock:
            connection, slot.connection = slot.connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except Exception:
            LOG.exception("Failed to close connection", extra={"connection_id": identifier})


__all__ = ["ConnectionRegistry"]
