"""JsonStore — one JSON file per workspace document inside a directory.

Layout of the workspace directory:
  job-groups.json         {rootJobName: [verificationJobName, ...]}
  branch-references.json  {branchName: commitId}
  requests.json           [request, ...]

Each save writes a temporary file next to the target and renames it over the
previous version. There is no locking: two processes sharing a workspace
directory overwrite each other (last writer wins).
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from faildiff_store.base import BaseStore

logger = logging.getLogger(__name__)


class JsonStore(BaseStore):
    """Stores workspace documents as pretty-printed JSON files in ``directory``."""

    def __init__(self, directory: str | os.PathLike):
        self._dir = Path(directory)
        if self._dir.exists() and not self._dir.is_dir():
            raise NotADirectoryError(f"The path '{self._dir}' is a file, but a directory is expected.")

    def _path(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    def load(self, name: str) -> Any | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupted workspace document {path}: {e}") from e

    def save(self, name: str, document: Any) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
        logger.debug("Saved %s", path)
