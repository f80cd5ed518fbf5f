"""SQL pretty-printing backed by sqlglot."""

from __future__ import annotations

import sqlglot
from sqlglot.errors import ParseError, TokenError

from .config import BackendKind
from .errors import MalformedCommandError

_DIALECTS: dict[BackendKind, str] = {
    BackendKind.SQLITE: "sqlite",
    BackendKind.POSTGRESQL: "postgres",
    BackendKind.MYSQL: "mysql",
    BackendKind.MARIADB: "mysql",
}


def dialect_for(kind: BackendKind | str | None) -> str | None:
    """sqlglot dialect name for a relational backend kind, else ``None``."""

    if kind is None:
        return None
    try:
        return _DIALECTS.get(BackendKind(kind))
    except ValueError:
        return None


def format_sql(sql: str, kind: BackendKind | str | None = None) -> str:
    """Pretty-print every statement in ``sql`` using the backend's dialect."""

    if not sql.strip():
        return ""
    dialect = dialect_for(kind)
    try:
        statements = sqlglot.transpile(sql, read=dialect, write=dialect, pretty=True)
    except (ParseError, TokenError) as exc:
        raise MalformedCommandError(str(exc).strip()) from exc
    return ";\n\n".join(statements)


__all__ = ["dialect_for", "format_sql"]
