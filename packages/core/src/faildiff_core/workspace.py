"""The workspace: everything faildiff persists between invocations.

A ``Workspace`` is loaded once at the start of a command and handed to each
component explicitly. Nothing reaches the store until ``flush()`` is called,
so a command that fails half-way leaves the previous state on disk.

The ``job-groups`` document is output only: it records the
``{referenceJob: [verificationJob, ...]}`` map of the last loaded job groups
for people inspecting the workspace. Job groups are always rebuilt from the
job list, so the document is never read back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faildiff_core.errors import InvariantError
from faildiff_core.model import BranchName, CommitId, JobGroups, Request, decode_id, encode_id

if TYPE_CHECKING:
    from faildiff_store.base import BaseStore

logger = logging.getLogger(__name__)

JOB_GROUPS = "job-groups"
BRANCH_REFERENCES = "branch-references"
REQUESTS = "requests"


class Workspace:
    def __init__(
        self,
        store: BaseStore,
        job_groups: dict[str, list[str]] | None = None,
        branch_references: dict[BranchName, CommitId] | None = None,
        requests: list[Request] | None = None,
    ):
        self._store = store
        self.job_groups = job_groups or {}
        self.branch_references = branch_references or {}
        self.requests = requests or []

    @classmethod
    def load(cls, store: BaseStore) -> Workspace:
        try:
            branch_references = {
                decode_id(BranchName, branch): decode_id(CommitId, commit)
                for branch, commit in (store.load(BRANCH_REFERENCES) or {}).items()
            }
            requests = [Request.from_json(r) for r in store.load(REQUESTS) or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvariantError(f"Corrupted workspace: {e}") from e
        logger.debug(
            "Loaded workspace: %d branch reference(s), %d request(s)", len(branch_references), len(requests)
        )
        return cls(store, branch_references=branch_references, requests=requests)

    def update_job_groups(self, job_groups: JobGroups) -> None:
        self.job_groups = job_groups.verification_map()

    def add_request(self, request: Request) -> None:
        if any(r.id == request.id for r in self.requests):
            raise InvariantError(f"Request {request.id} is already registered")
        self.requests.append(request)

    def pending_requests(self) -> list[Request]:
        return [r for r in self.requests if r.is_pending]

    def drop(self, request: Request) -> None:
        self.requests = [r for r in self.requests if r.id != request.id]

    def flush(self) -> None:
        self._store.save(JOB_GROUPS, self.job_groups)
        self._store.save(
            BRANCH_REFERENCES,
            {encode_id(branch): encode_id(commit) for branch, commit in sorted(self.branch_references.items())},
        )
        self._store.save(REQUESTS, [r.to_json() for r in self.requests])
        logger.debug("Workspace flushed (%d request(s))", len(self.requests))
