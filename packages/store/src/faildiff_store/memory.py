"""In-memory store, used when nothing should touch the disk."""

from __future__ import annotations

import copy
from typing import Any

from faildiff_store.base import BaseStore


class MemoryStore(BaseStore):
    """Keeps deep copies of saved documents so callers cannot mutate stored state."""

    def __init__(self, documents: dict[str, Any] | None = None):
        self.documents: dict[str, Any] = copy.deepcopy(documents) if documents else {}
        self.saves = 0

    def load(self, name: str) -> Any | None:
        if name not in self.documents:
            return None
        return copy.deepcopy(self.documents[name])

    def save(self, name: str, document: Any) -> None:
        self.documents[name] = copy.deepcopy(document)
        self.saves += 1
