"""Pick the reference commit of a branch from local history and Jenkins builds.

Local history is authoritative for recency: commits are scanned from HEAD
backwards, skipping HEAD itself, and the nearest one carried by a usable build
of every reference job of a branch wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from faildiff_core.model import Build, BranchName, CommitId, JobName, RootBuild, RootDiff, RootName

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 50


class RootBuildIndex:
    """Memoised view of the builds of reference root jobs."""

    def __init__(self, client):
        self._client = client
        self._builds: dict[JobName, list[Build]] = {}

    def builds(self, job: JobName) -> list[Build]:
        """Builds of ``job``, newest first."""
        if job not in self._builds:
            logger.debug("Fetching builds of %s", job)
            self._builds[job] = list(self._client.get_builds(job))
        return self._builds[job]

    def contains(self, job: JobName, commit: CommitId) -> bool:
        return any(commit in build.commits for build in self.builds(job))

    def find_build(self, job: JobName, commit: CommitId) -> RootBuild | None:
        """Return the first completed build with test results at or after the one carrying ``commit``."""
        if not self.contains(job, commit):
            return None
        oldest_first = list(reversed(self.builds(job)))
        for i, build in enumerate(oldest_first):
            if commit not in build.commits:
                continue
            for candidate in oldest_first[i:]:
                if candidate.has_test_results:
                    return RootBuild.from_build(job, candidate)
            return None
        return None


@dataclass(frozen=True)
class BranchGuess:
    root_diffs: list[RootDiff]
    branch: BranchName
    commit: CommitId


def distinct_reference_jobs(root_diffs: Sequence[RootDiff]) -> list[JobName]:
    """Reference jobs of ``root_diffs`` in first-seen order."""
    jobs: list[JobName] = []
    for root_diff in root_diffs:
        if root_diff.reference_job not in jobs:
            jobs.append(root_diff.reference_job)
    return jobs


class BranchTracker:
    """Looks up reference commits from the persisted ``{branch: reference commit}`` mapping and local history.

    HEAD (``commits[0]``) is the commit under test and is never a reference.
    """

    def __init__(self, references: dict[BranchName, CommitId], index: RootBuildIndex, scan_limit: int = DEFAULT_SCAN_LIMIT):
        self._references = references
        self._index = index
        self._scan_limit = scan_limit

    def _window(self, commits: Sequence[CommitId]) -> Sequence[CommitId]:
        return commits[1 : self._scan_limit]

    def _on_every_job(self, jobs: Sequence[JobName], commit: CommitId) -> bool:
        return bool(jobs) and all(self._index.find_build(job, commit) is not None for job in jobs)

    def try_find_ref_commit(
        self,
        commits: Sequence[CommitId],
        root_jobs: Sequence[JobName],
        branch: BranchName,
    ) -> CommitId | None:
        """Return the stored reference of ``branch`` if it is still usable, else None.

        The stored commit must still be part of local history below HEAD and be
        carried by a usable build of every one of ``root_jobs``.
        """
        stored = self._references.get(branch)
        if stored is None:
            logger.info("No stored reference commit for branch %s", branch)
            return None
        if stored not in self._window(commits):
            logger.warning("Stored reference %s of branch %s is not in local history", stored.short(), branch)
            return None
        if not self._on_every_job(root_jobs, stored):
            logger.warning(
                "Stored reference %s of branch %s is not on a build of every job in %s",
                stored.short(),
                branch,
                ", ".join(str(j) for j in root_jobs),
            )
            return None
        logger.info("Using stored reference commit %s of branch %s", stored.short(), branch)
        return stored

    def try_guess_branch(
        self,
        commits: Sequence[CommitId],
        root_names: Sequence[RootName],
        resolver,
        branches: Sequence[BranchName] | None = None,
    ) -> BranchGuess | None:
        """Find the nearest commit below HEAD carried by a usable build of every reference job of a branch.

        Commits are scanned newest first; for one commit, branches are tried in
        declaration order.
        """
        if branches is None:
            candidates = resolver.branches()
            logger.info("No branch specified, guessing among %s", ", ".join(str(b) for b in candidates))
        else:
            candidates = list(branches)
        diffs_by_branch = {branch: resolver.get_root_diffs(root_names, branch) for branch in candidates}
        jobs_by_branch = {branch: distinct_reference_jobs(diffs) for branch, diffs in diffs_by_branch.items()}

        window = self._window(commits)
        for commit in window:
            for branch in candidates:
                if self._on_every_job(jobs_by_branch[branch], commit):
                    logger.info("Using reference commit %s of branch %s", commit.short(), branch)
                    return BranchGuess(root_diffs=diffs_by_branch[branch], branch=branch, commit=commit)

        logger.error("Failed to find a reference commit in the %d commit(s) below HEAD", len(window))
        return None
