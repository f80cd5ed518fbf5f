"""Parsers for the dotted document-command notation and key-value command lines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from bson import json_util

from .errors import MalformedCommandError, UnsupportedOperationError


class DocumentOperation(str, Enum):
    """Operations understood by the document driver."""

    FIND = "find"
    COUNT = "count"


@dataclass(frozen=True, slots=True)
class DocumentCommand:
    """Parsed ``<collection>.<operation>`` command."""

    collection: str
    operation: DocumentOperation
    filter: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class KeyValueCommand:
    """Whitespace-tokenized key-value command line."""

    name: str
    args: tuple[str, ...] = ()

    @property
    def tokens(self) -> tuple[str, ...]:
        return (self.name, *self.args)


def parse_document_command(text: str) -> DocumentCommand:
    """Split ``text`` on the first ``.`` and parse the operation that follows."""

    collection, sep, remainder = text.strip().partition(".")
    collection = collection.strip()
    if not sep or not collection:
        raise MalformedCommandError("Invalid MQL format. Use: collection.command")
    command = remainder.lstrip()
    if command.startswith("find("):
        return DocumentCommand(
            collection=collection,
            operation=DocumentOperation.FIND,
            filter=_parse_filter(command[len("find(") :]),
        )
    if command.startswith("count()"):
        return DocumentCommand(collection=collection, operation=DocumentOperation.COUNT)
    raise UnsupportedOperationError(f"Unsupported MQL command: {command}")


def parse_keyvalue_command(text: str) -> KeyValueCommand:
    """Split a command line on whitespace; quoting is not supported."""

    tokens = text.split()
    if not tokens:
        raise MalformedCommandError("Empty command")
    return KeyValueCommand(name=tokens[0], args=tuple(tokens[1:]))


def _parse_filter(body: str) -> dict[str, Any]:
    body = body.rstrip()
    if not body.endswith(")"):
        raise MalformedCommandError("Unterminated find( ... ) call")
    filter_text = body[:-1].strip()
    if not filter_text or filter_text == "{}":
        return {}
    try:
        parsed = json_util.loads(filter_text)
    except Exception as exc:
        raise MalformedCommandError(f"Invalid find filter: {exc}") from exc
    if not isinstance(parsed, dict):
        raise MalformedCommandError("Find filter must be a document literal")
    return parsed


__all__ = [
    "DocumentCommand",
    "DocumentOperation",
    "KeyValueCommand",
    "parse_document_command",
    "parse_keyvalue_command",
]
