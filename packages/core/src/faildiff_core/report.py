"""Result of a resolved request and the interface that delivers it."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from faildiff_core.differ import FailedTestDiff
from faildiff_core.model import BranchName, BuildReference, CommitId, JobName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationReport:
    """Outcome of one verification build.

    ``diff`` is None when the build could not be compared with the baseline;
    ``reason`` then says why.
    """

    root_job: JobName
    build: BuildReference
    is_successful: bool
    root_build: BuildReference | None = None
    diff: FailedTestDiff | None = None
    reason: str = ""

    @property
    def baseline(self) -> str:
        return str(self.root_build or self.root_job)

    @property
    def is_comparable(self) -> bool:
        return self.diff is not None


@dataclass(frozen=True)
class RequestReport:
    request_id: str
    branch: BranchName
    head_commit: CommitId
    reference_commit: CommitId
    verifications: list[VerificationReport] = field(default_factory=list)

    @property
    def has_regressions(self) -> bool:
        return any(v.diff is not None and v.diff.has_regressions for v in self.verifications)


class BaseReportSender(ABC):
    @abstractmethod
    def send(self, report: RequestReport) -> None:
        """Deliver ``report``; called once per resolved request."""


class LogReportSender(BaseReportSender):
    """Writes each report to the log, one line per verification build and failure."""

    def send(self, report: RequestReport) -> None:
        logger.info(
            "Report for request %s (%s, %s vs %s)",
            report.request_id,
            report.branch,
            report.head_commit.short(),
            report.reference_commit.short(),
        )
        for verification in report.verifications:
            if verification.diff is None:
                logger.warning("  %s: not comparable (%s)", verification.build, verification.reason)
                continue
            labels = ", ".join(verification.diff.status.labels()) or "no failures"
            logger.info("  %s vs %s: %s", verification.build, verification.baseline, labels)
            for test in verification.diff.added:
                logger.info("    new: %s", test)
            for test in verification.diff.updated:
                logger.info("    updated: %s", test)
