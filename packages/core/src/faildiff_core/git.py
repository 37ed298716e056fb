"""Read the local commit history with the git command line."""

from __future__ import annotations

import logging
import pathlib
import subprocess
from typing import Sequence

from faildiff_core.errors import GitError
from faildiff_core.model import CommitId

logger = logging.getLogger(__name__)


def run_git(args: Sequence[str], cwd: pathlib.Path | str | None = None) -> str:
    """Run ``git <args>`` and return its stripped stdout; non-zero exit raises GitError."""
    cmd = ["git", *args]
    try:
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise GitError("git executable not found on PATH") from e
    if result.returncode != 0:
        raise GitError(f"`{' '.join(cmd)}` failed: {result.stderr.strip() or result.returncode}")
    return result.stdout.strip()


class GitRepo:
    def __init__(self, cwd: pathlib.Path | str | None = None):
        self.cwd = cwd
        try:
            self.root = run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
        except GitError as e:
            raise GitError(f"No git repository found from directory '{cwd or pathlib.Path.cwd()}'") from e

    def get_last_commits(self, count: int) -> list[CommitId]:
        """Return up to ``count`` commits reachable from HEAD, newest first."""
        output = run_git(["rev-list", f"--max-count={count}", "HEAD"], cwd=self.cwd)
        commits = [CommitId(line) for line in output.splitlines() if line]
        logger.debug("Read %d commit(s) from %s", len(commits), self.root)
        return commits
