"""Render query results as CSV, JSON or SQL INSERT statements."""

from __future__ import annotations

import csv
import io
import json
from enum import Enum
from typing import Any, Sequence

from sqlglot import exp

from .errors import UnsupportedOperationError
from .models import GenericValue, QueryResult, TabularResult

DEFAULT_TABLE_NAME = "exported_data"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    SQL = "sql"


def export_result(
    result: QueryResult | TabularResult,
    fmt: ExportFormat | str = ExportFormat.CSV,
    *,
    include_headers: bool = True,
    delimiter: str = ",",
    table_name: str = DEFAULT_TABLE_NAME,
    dialect: str | None = None,
) -> str:
    """Serialize ``result`` in the requested format."""

    try:
        export_format = ExportFormat(fmt)
    except ValueError:
        raise UnsupportedOperationError(f"Unsupported export format: {fmt}") from None
    columns = _column_names(result)
    if export_format is ExportFormat.CSV:
        return _to_csv(columns, result.rows, include_headers=include_headers, delimiter=delimiter)
    if export_format is ExportFormat.JSON:
        return _to_json(columns, result.rows)
    return _to_sql(columns, result.rows, table_name=table_name, dialect=dialect)


def _column_names(result: QueryResult | TabularResult) -> tuple[str, ...]:
    if isinstance(result, TabularResult):
        return result.column_names
    return tuple(result.columns)


def _to_csv(
    columns: Sequence[str],
    rows: Sequence[Sequence[GenericValue]],
    *,
    include_headers: bool,
    delimiter: str,
) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    if include_headers:
        writer.writerow(columns)
    for row in rows:
        writer.writerow([_csv_cell(value) for value in row])
    return buffer.getvalue()


def _csv_cell(value: GenericValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _to_json(columns: Sequence[str], rows: Sequence[Sequence[GenericValue]]) -> str:
    records = [dict(zip(columns, row)) for row in rows]
    return json.dumps(records, indent=2, ensure_ascii=False, default=str)


def _to_sql(
    columns: Sequence[str],
    rows: Sequence[Sequence[GenericValue]],
    *,
    table_name: str,
    dialect: str | None,
) -> str:
    statements: list[str] = []
    for row in rows:
        values = exp.values([tuple(_sql_value(value) for value in row)])
        statement = exp.insert(values, table_name, columns=list(columns), dialect=dialect)
        statements.append(statement.sql(dialect=dialect) + ";")
    return "\n".join(statements)


def _sql_value(value: GenericValue) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


__all__ = ["DEFAULT_TABLE_NAME", "ExportFormat", "export_result"]
