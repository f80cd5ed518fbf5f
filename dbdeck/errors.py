"""Error taxonomy shared by drivers, router, registry and command surface."""

from __future__ import annotations


class DbDeckError(RuntimeError):
    """Base class for failures surfaced to callers as a message string."""


class UnsupportedBackendError(DbDeckError):
    """Raised when a descriptor names a backend kind the core does not implement."""


class ConnectFailureError(DbDeckError):
    """Raised when the native client fails to open or probe a connection."""


class NotConnectedError(DbDeckError):
    """Raised when an operation targets an identifier with no live connection."""

    def __init__(self, message: str = "Not connected") -> None:
        super().__init__(message)


class MalformedCommandError(DbDeckError):
    """Raised when an embedded command cannot be parsed into an operation."""


class NativeExecutionError(DbDeckError):
    """Raised when the backend ran a command but reported a failure."""


class UnsupportedOperationError(DbDeckError):
    """Raised for recognized commands or operations that are not implemented."""


__all__ = [
    "ConnectFailureError",
    "DbDeckError",
    "MalformedCommandError",
    "NativeExecutionError",
    "NotConnectedError",
    "UnsupportedBackendError",
    "UnsupportedOperationError",
]
