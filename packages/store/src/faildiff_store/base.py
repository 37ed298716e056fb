"""Abstract store interface.

A store holds the workspace documents (job groups, branch references,
requests) as plain JSON-compatible values keyed by document name. The core
package depends only on this interface, so the JSON directory store used by
the CLI and the in-memory store used in tests are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseStore(ABC):
    """Pluggable persistence layer for workspace documents."""

    @abstractmethod
    def load(self, name: str) -> Any | None:
        """Return the document stored under ``name``, or None if it was never saved."""

    @abstractmethod
    def save(self, name: str, document: Any) -> None:
        """Replace the document stored under ``name``."""

    def close(self) -> None:
        """Release any resources held by the store.

        Optional; the default is a no-op so callers can always call close() safely.
        """
