"""Resolve pending requests whose verification builds have finished."""

from __future__ import annotations

import logging
from dataclasses import replace

import requests

from faildiff_core.differ import diff
from faildiff_core.errors import InvariantError
from faildiff_core.model import Build, BuildResult, JobName, Request, TestBuild, VerificationRun
from faildiff_core.report import BaseReportSender, RequestReport, VerificationReport
from faildiff_core.workspace import Workspace

logger = logging.getLogger(__name__)

# Builds that never produce a test report.
NOT_COMPARABLE = (BuildResult.ABORTED, BuildResult.NOT_BUILT)


class Synchronizer:
    def __init__(self, client, report_sender: BaseReportSender):
        self._client = client
        self._sender = report_sender
        self._builds: dict[JobName, list[Build]] = {}

    def _get_builds(self, job: JobName) -> list[Build]:
        if job not in self._builds:
            self._builds[job] = list(self._client.get_builds(job))
        return self._builds[job]

    def _find_build(self, run: VerificationRun) -> Build | None:
        for build in self._get_builds(run.job):
            if build.number == run.build_number:
                return build
            if build.number < run.build_number:
                break
        return None

    def _completed_builds(self, request: Request) -> list[Build] | None:
        completed = []
        for run in request.runs:
            build = self._find_build(run)
            if build is None:
                logger.info("Request %s: %s not started yet", request.id, run.reference)
                return None
            if build.building:
                logger.info("Request %s: %s still running", request.id, run.reference)
                return None
            completed.append(build)
        return completed

    def _verify(self, request: Request, run: VerificationRun, build: Build) -> VerificationReport:
        if run.root_job not in request.baseline:
            raise InvariantError(f"Request {request.id} has no baseline for {run.root_job}")
        report = VerificationReport(
            root_job=run.root_job,
            build=run.reference,
            is_successful=build.is_successful,
            root_build=run.root_reference,
        )

        if build.result in NOT_COMPARABLE:
            return replace(report, reason=f"build {build.result.to_wire()}")
        try:
            failed_tests = self._client.get_failed_tests(run.job, run.build_number)
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code != 404:
                raise
            return replace(report, reason="no test report")

        test_build = TestBuild.from_build(run.job, build, run.root_reference, failed_tests)
        return replace(report, diff=diff(request.baseline[run.root_job], test_build.failed_tests))

    def update(self, workspace: Workspace) -> int:
        """Resolve every pending request whose builds are all complete; return how many were resolved."""
        self._builds.clear()
        resolved = 0
        for request in workspace.pending_requests():
            builds = self._completed_builds(request)
            if builds is None:
                continue

            report = RequestReport(
                request_id=request.id,
                branch=request.branch,
                head_commit=request.head_commit,
                reference_commit=request.reference_commit,
                verifications=[self._verify(request, run, build) for run, build in zip(request.runs, builds)],
            )
            self._sender.send(report)

            request.resolve()
            workspace.drop(request)
            workspace.flush()
            resolved += 1
            logger.info("Resolved request %s", request.id)

        if not resolved:
            logger.info("Nothing to resolve")
        return resolved
