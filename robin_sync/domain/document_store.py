"""Domain-level protocol for persisting named JSON documents."""

from __future__ import annotations

from typing import Any, Protocol


class DocumentStore(Protocol):
    """Abstraction for durable, per-name serialized JSON documents."""

    def load(self, name: str, default: Any) -> Any:
        """Return the stored document, persisting ``default`` first if none exists."""

    def save(self, name: str, value: Any) -> None:
        """Overwrite the stored document for ``name``."""


__all__ = ["DocumentStore"]
