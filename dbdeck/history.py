"""Bounded in-memory history of executed commands."""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

DEFAULT_HISTORY_SIZE = 500


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One executed command and its outcome."""

    connection_id: str
    command: str
    elapsed_ms: int
    success: bool
    error: str | None = None
    executed_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class QueryHistory:
    """Newest-first command log capped at ``max_size`` entries."""

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._entries: deque[HistoryEntry] = deque(maxlen=max_size)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_size(self) -> int:
        return self._entries.maxlen or 0

    def record(
        self,
        connection_id: str,
        command: str,
        *,
        elapsed_ms: int,
        error: str | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            connection_id=connection_id,
            command=command,
            elapsed_ms=elapsed_ms,
            success=error is None,
            error=error,
        )
        self._entries.appendleft(entry)
        return entry

    def entries(self, connection_id: str | None = None) -> tuple[HistoryEntry, ...]:
        """Return entries newest first, optionally for one connection."""

        if connection_id is None:
            return tuple(self._entries)
        return tuple(entry for entry in self._entries if entry.connection_id == connection_id)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["DEFAULT_HISTORY_SIZE", "HistoryEntry", "QueryHistory"]
