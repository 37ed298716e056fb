"""Map filter names chosen for a request onto concrete verification jobs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from faildiff_core.errors import ConfigError
from faildiff_core.model import BranchName, JobGroups, RootDiff, RootName, TestName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestFilter:
    """A named regular expression over verification job test labels.

    Filters sharing a ``group`` are alternatives; distinct groups must all match.
    """

    __test__ = False

    name: str
    pattern: str
    group: str = "default"

    def matches(self, test: TestName) -> bool:
        return re.search(self.pattern, test.value) is not None


def load_filters(config: dict) -> dict[str, TestFilter]:
    filters: dict[str, TestFilter] = {}
    for entry in config.get("filters") or []:
        try:
            test_filter = TestFilter(name=entry["name"], pattern=entry["pattern"], group=entry.get("group", "default"))
            re.compile(test_filter.pattern)
        except KeyError as e:
            raise ConfigError(f"Filter entry {entry!r} is missing {e}") from e
        except re.error as e:
            raise ConfigError(f"Invalid pattern for filter '{entry['name']}': {e}") from e
        if test_filter.name in filters:
            raise ConfigError(f"Duplicate filter name '{test_filter.name}'")
        filters[test_filter.name] = test_filter
    return filters


class FilterResolver:
    def __init__(self, config: dict, job_groups: JobGroups, filter_names: Iterable[str] = ()):
        self._config = config
        self._job_groups = job_groups
        known = load_filters(config)
        names = list(filter_names)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ConfigError(
                f"Unknown test filter{'s' if len(unknown) > 1 else ''}: {', '.join(repr(n) for n in unknown)}"
            )
        self._filter_groups: dict[str, list[TestFilter]] = {}
        for name in names:
            test_filter = known[name]
            self._filter_groups.setdefault(test_filter.group, []).append(test_filter)

    @property
    def filter_names(self) -> list[str]:
        return [f.name for group in self._filter_groups.values() for f in group]

    def accepts(self, test: TestName | None) -> bool:
        """A job passes when it matches at least one filter of every group.

        Jobs without a test label run the whole suite and always pass.
        """
        if test is None:
            return True
        return all(any(f.matches(test) for f in group) for group in self._filter_groups.values())

    def branches(self) -> list[BranchName]:
        """Branch candidates in the order the reference jobs are declared."""
        seen: list[BranchName] = []
        for entry in self._config.get("reference_jobs") or []:
            branch = BranchName(entry["branch"])
            if branch not in seen:
                seen.append(branch)
        return seen

    def get_root_diffs(self, root_names: Iterable[RootName], branch: BranchName) -> list[RootDiff]:
        root_diffs: list[RootDiff] = []
        for root in root_names:
            group = self._job_groups.by_root.get(root)
            if group is None:
                logger.debug("Unknown root '%s'", root)
                continue
            reference_job = group.reference_jobs.get(branch)
            if reference_job is None:
                logger.debug("No reference job for root '%s' on branch '%s'", root, branch)
                continue
            jobs = sorted(job for test, job in group.verification_jobs.items() if self.accepts(test))
            if not jobs:
                logger.info("No verification job of root '%s' matches filters %s", root, self.filter_names)
                continue
            root_diffs.extend(RootDiff(root, reference_job, job) for job in jobs)
        return root_diffs
