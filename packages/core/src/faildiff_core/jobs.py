"""Load the Jenkins job list and group it into reference and verification jobs.

Job names are classified with the regular expressions configured under
``reference_jobs`` and ``on_demand_jobs``. Every pattern captures the root
name (``(?P<root>...)``); on-demand patterns may also capture a test label
(``(?P<test>...)``) for verification jobs that only run part of the suite.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from faildiff_core.config import save_job_names
from faildiff_core.errors import ConfigError
from faildiff_core.model import BranchName, JobGroup, JobGroups, JobName, RootName, TestName

logger = logging.getLogger(__name__)


def _compile(pattern: str, kind: str) -> re.Pattern:
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid {kind} pattern {pattern!r}: {e}") from e
    if "root" not in regex.groupindex:
        raise ConfigError(f"{kind} pattern {pattern!r} must define a (?P<root>...) group")
    return regex


class ReferenceJobPattern:
    """Matches the reference root job of one branch, e.g. ``^main-(?P<root>build)$``."""

    def __init__(self, pattern: str, branch: str):
        self._regex = _compile(pattern, "reference job")
        self.branch = BranchName(branch)

    def match(self, job_name: JobName) -> tuple[BranchName, RootName] | None:
        m = self._regex.search(job_name.value)
        if m is None:
            return None
        return self.branch, RootName(m.group("root"))


class OnDemandJobPattern:
    """Matches verification jobs, e.g. ``^ondemand-(?P<root>build)(-(?P<test>\\w+))?$``."""

    def __init__(self, pattern: str):
        self._regex = _compile(pattern, "on-demand job")

    def match(self, job_name: JobName) -> tuple[RootName, TestName | None] | None:
        m = self._regex.search(job_name.value)
        if m is None:
            return None
        test = m.groupdict().get("test")
        return RootName(m.group("root")), TestName(test) if test else None


class JobGroupsBuilder:
    def __init__(self):
        self._groups: dict[RootName, JobGroup] = {}

    def _group(self, root: RootName) -> JobGroup:
        return self._groups.setdefault(root, JobGroup())

    def add_reference(self, job: JobName, branch: BranchName, root: RootName) -> None:
        group = self._group(root)
        current = group.reference_jobs.get(branch)
        if current is not None:
            raise ConfigError(f"Job must be unique, cannot add '{job}' for '{branch}' branch after '{current}'")
        group.reference_jobs[branch] = job

    def add_verification(self, job: JobName, root: RootName, test: TestName | None) -> None:
        group = self._group(root)
        current = group.verification_jobs.get(test)
        if current is not None:
            raise ConfigError(f"Job must be unique, cannot add '{job}' after '{current}'")
        group.verification_jobs[test] = job

    def build(self) -> tuple[JobGroups | None, list[str]]:
        """Return the usable groups plus a warning per degraded root."""
        warnings: list[str] = []
        by_root: dict[RootName, JobGroup] = {}
        for root, group in self._groups.items():
            if not group.reference_jobs:
                jobs = ", ".join(f"'{j}'" for j in group.verification_jobs.values())
                warnings.append(f"No reference job for root '{root}' ({jobs})")
            elif not group.verification_jobs:
                jobs = ", ".join(f"'{j}'" for j in group.reference_jobs.values())
                warnings.append(f"No verification job for root '{root}' ({jobs})")
            else:
                by_root[root] = group
        if not by_root:
            return None, warnings
        return JobGroups(by_root=by_root), warnings


class JobManager:
    """Turns the Jenkins job list into ``JobGroups``, caching job names in the config file."""

    def __init__(self, config: dict, client, config_path: str | None = None):
        self._config = config
        self._client = client
        self._config_path = config_path

    def try_load(self, no_cache: bool = False) -> JobGroups | None:
        cached = self._config.get("job_names") or []
        if cached and not no_cache:
            logger.debug("Using %d cached job names", len(cached))
            return self.groups_from_names(self._config, [JobName(name) for name in cached])

        folders = self._config.get("multi_branch_folders") or []
        logger.info("Fetching job list from Jenkins")
        job_names = self._client.get_job_names(folders)
        groups = self.groups_from_names(self._config, job_names)
        if groups is not None:
            names = sorted(j.value for j in job_names)
            self._config["job_names"] = names
            if self._config_path:
                save_job_names(self._config_path, names)
                logger.info("Cached %d job names in %s", len(names), self._config_path)
        return groups

    @staticmethod
    def groups_from_names(config: dict, job_names: Iterable[JobName]) -> JobGroups | None:
        """Rebuild job groups from a known list of names, without network access."""
        reference_patterns = [ReferenceJobPattern(j["pattern"], j["branch"]) for j in config.get("reference_jobs") or []]
        on_demand_patterns = [OnDemandJobPattern(j["pattern"]) for j in config.get("on_demand_jobs") or []]

        job_names = list(job_names)
        if not job_names:
            logger.error("No jobs found")
            return None

        builder = JobGroupsBuilder()
        for job_name in job_names:
            ref_match = next((m for m in (p.match(job_name) for p in reference_patterns) if m), None)
            if ref_match is not None:
                branch, root = ref_match
                builder.add_reference(job_name, branch, root)
                continue
            ond_match = next((m for m in (p.match(job_name) for p in on_demand_patterns) if m), None)
            if ond_match is not None:
                root, test = ond_match
                builder.add_verification(job_name, root, test)

        groups, warnings = builder.build()
        if warnings:
            logger.warning("Job groups loaded with %d warning%s:", len(warnings), "s" if len(warnings) > 1 else "")
            for warning in warnings:
                logger.warning("  %s", warning)
        if groups is None:
            logger.error("No job matches both a reference and an on-demand pattern")
        return groups
