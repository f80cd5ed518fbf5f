"""One-shot command line front end over the command surface."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Sequence

from .config import BackendKind, ConnectionDescriptor, CoreSettings, load_settings
from .errors import DbDeckError
from .export import ExportFormat, export_result
from .formatting import dialect_for, format_sql
from .surface import CommandSurface

CLI_CONNECTION_ID = "cli"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbdeck", description="Run one command against a database.")
    parser.add_argument("--type", dest="kind", required=True, help="Backend kind, e.g. " + ", ".join(k.value for k in BackendKind))
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--database", default="", help="Database name, file path (sqlite) or db index (redis)")
    parser.add_argument("--user", default="")
    parser.add_argument("--password", default=None)
    parser.add_argument("--tls", action="store_true")
    parser.add_argument("--output", choices=[fmt.value for fmt in ExportFormat], default=ExportFormat.CSV.value)
    parser.add_argument("--no-headers", action="store_true", help="Omit the CSV header row")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--schema", action="store_true", help="Print introspected schema as JSON")
    mode.add_argument("--keys", metavar="PATTERN", help="List key-value keys matching PATTERN")
    mode.add_argument("--get", metavar="KEY", help="Read one key-value key")
    mode.add_argument("--format-sql", action="store_true", help="Pretty-print COMMAND without running it")
    parser.add_argument("command", nargs="?", default="", help="SQL, collection command or key-value command")
    return parser


async def run(args: argparse.Namespace, settings: CoreSettings) -> str:
    if args.format_sql:
        return format_sql(args.command, args.kind)
    descriptor = ConnectionDescriptor(
        id=CLI_CONNECTION_ID,
        name=CLI_CONNECTION_ID,
        kind=args.kind,
        host=args.host,
        port=args.port,
        database=args.database,
        username=args.user,
        password=args.password,
        tls=args.tls,
    )
    surface = CommandSurface(settings)
    await surface.connect(descriptor)
    try:
        if args.schema:
            entries = await surface.get_schema(CLI_CONNECTION_ID)
            return json.dumps([asdict(entry) for entry in entries], indent=2)
        if args.keys is not None:
            keys = await surface.list_keys(CLI_CONNECTION_ID, args.keys)
            return json.dumps([asdict(key) for key in keys], indent=2)
        if args.get is not None:
            result = await surface.get_value(CLI_CONNECTION_ID, args.get)
        else:
            result = await surface.execute_query(CLI_CONNECTION_ID, args.command)
        return export_result(
            result,
            args.output,
            include_headers=not args.no_headers,
            dialect=dialect_for(args.kind),
        )
    finally:
        await surface.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    try:
        output = asyncio.run(run(args, settings))
    except DbDeckError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if output:
        print(output.rstrip("\n"))
    return 0


__all__ = ["build_parser", "main", "run"]
