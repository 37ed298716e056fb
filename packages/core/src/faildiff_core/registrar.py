"""Register a new request: capture the baseline and trigger verification builds."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from faildiff_core.branches import RootBuildIndex, distinct_reference_jobs
from faildiff_core.config import DEFAULT_CONFIG
from faildiff_core.errors import RegistrationError
from faildiff_core.model import FailedTest, JobName, Request, RootBuild, RootDiff, VerificationRun, encode_id
from faildiff_core.workspace import Workspace

logger = logging.getLogger(__name__)


class RequestManager:
    def __init__(self, workspace: Workspace, client, config: dict, index: RootBuildIndex | None = None):
        self._workspace = workspace
        self._client = client
        self._trigger_param = config.get("trigger_param") or DEFAULT_CONFIG["trigger_param"]
        self._index = index or RootBuildIndex(client)

    def _root_build(self, job: JobName, request: Request, root_diffs: Sequence[RootDiff]) -> RootBuild:
        root_build = self._index.find_build(job, request.reference_commit)
        if root_build is None:
            raise RegistrationError(
                f"No completed build of {job} carries reference commit {request.reference_commit.short()}"
            )
        return replace(root_build, verification_jobs=tuple(d.verification_job for d in root_diffs if d.reference_job == job))

    def register(self, request: Request, root_diffs: Sequence[RootDiff]) -> Request:
        """Fetch the baseline of every reference job, trigger every verification job, then persist.

        Nothing is written to the workspace unless all of it succeeds.
        """
        if not root_diffs:
            raise RegistrationError("Nothing to verify: no verification job matches the request")

        root_builds: dict[JobName, RootBuild] = {}
        baseline: dict[JobName, list[FailedTest]] = {}
        for job in distinct_reference_jobs(root_diffs):
            root_build = self._root_build(job, request, root_diffs)
            root_builds[job] = root_build
            baseline[job] = self._client.get_failed_tests(job, root_build.build_number)
            logger.info("Baseline %s: %d failed test(s)", root_build, len(baseline[job]))

        params = {self._trigger_param: encode_id(request.head_commit)}
        runs = []
        for job, root_build in root_builds.items():
            for verification_job in root_build.verification_jobs:
                number = self._client.trigger_build(verification_job, params)
                runs.append(
                    VerificationRun(
                        root_job=job,
                        job=verification_job,
                        build_number=number,
                        root_build_number=root_build.build_number,
                    )
                )

        request.baseline = baseline
        request.runs = runs
        self._workspace.add_request(request)
        self._workspace.branch_references[request.branch] = request.reference_commit
        self._workspace.flush()
        logger.info("Registered request %s with %d verification build(s)", request.id, len(runs))
        return request
