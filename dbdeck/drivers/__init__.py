"""Backend drivers, one per engine family."""

from __future__ import annotations

from .document import DocumentDriver
from .keyvalue import KeyValueDriver
from .relational import RelationalDriver

__all__ = ["DocumentDriver", "KeyValueDriver", "RelationalDriver"]
