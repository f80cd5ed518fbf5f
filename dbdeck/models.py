"""Shared dataclasses describing normalized results and introspected structure."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

GenericValue = Any
"""One normalized cell: None, bool, int, float, str, list or dict of generic values."""

Row = tuple[GenericValue, ...]


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Result column name plus its normalized type label."""

    name: str
    type: str


@dataclass(frozen=True, slots=True)
class TabularResult:
    """Uniform columns/rows contract every driver normalizes into."""

    columns: tuple[ColumnDescriptor, ...] = ()
    rows: tuple[Row, ...] = ()

    def __post_init__(self) -> None:
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"Row {index} has {len(row)} values, expected {width}")

    @classmethod
    def build(cls, columns: Sequence[tuple[str, str]], rows: Sequence[Sequence[GenericValue]]) -> TabularResult:
        """Create a result from ``(name, type)`` pairs and row sequences."""

        return cls(
            columns=tuple(ColumnDescriptor(name=name, type=type_) for name, type_ in columns),
            rows=tuple(tuple(row) for row in rows),
        )

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def types(self) -> tuple[str, ...]:
        return tuple(column.type for column in self.columns)

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Result returned by the command surface for ``execute_query``."""

    columns: tuple[str, ...]
    types: tuple[str, ...]
    rows: tuple[Row, ...]
    row_count: int
    elapsed_ms: int
    affected_rows: int = 0
    error: str | None = None

    @classmethod
    def from_tabular(cls, result: TabularResult, *, elapsed_ms: int) -> QueryResult:
        return cls(
            columns=result.column_names,
            types=result.types,
            rows=result.rows,
            row_count=result.row_count,
            elapsed_ms=elapsed_ms,
        )


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Field-level metadata for one column of a schema entry."""

    name: str
    type: str
    nullable: bool
    default_value: str | None = None
    is_primary_key: bool = False
    is_foreign_key: bool = False
    foreign_key_table: str | None = None
    foreign_key_column: str | None = None


@dataclass(frozen=True, slots=True)
class SchemaEntry:
    """One introspected structural unit (table, view, collection or key namespace)."""

    name: str
    kind: str
    schema: str | None = None
    columns: tuple[ColumnInfo, ...] = field(default_factory=tuple)
    row_count: int | None = None
    size: int | None = None


@dataclass(frozen=True, slots=True)
class KeyInfo:
    """Key-value store key summary; ``ttl`` is ``None`` when the key never expires."""

    name: str
    type: str
    size: int
    ttl: int | None = None


__all__ = [
    "ColumnDescriptor",
    "ColumnInfo",
    "GenericValue",
    "KeyInfo",
    "QueryResult",
    "Row",
    "SchemaEntry",
    "TabularResult",
]
