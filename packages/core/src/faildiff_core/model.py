"""Value types shared by every faildiff component.

Everything here is either immutable or, for ``Request``, only ever mutated by
the synchronizer. Instances are rebuilt on each invocation from Jenkins
responses or from the JSON documents kept in the workspace.
"""

from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from faildiff_core.errors import InvariantError, ValidationError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_COMMIT_RE = re.compile(r"^[0-9a-f]{40}$")


def from_epoch_ms(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def to_epoch_ms(moment: datetime) -> int:
    return (moment - _EPOCH) // _ONE_MS


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class CommitId:
    """A full git SHA-1: 40 lowercase hex characters."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not _COMMIT_RE.match(self.value):
            raise ValidationError("commitId", f"expected 40 lowercase hex characters, got {self.value!r}")

    def short(self) -> str:
        return self.value[:7]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class _Name:
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError(type(self).__name__, f"expected a non-empty string, got {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class JobName(_Name):
    """A Jenkins job, possibly inside folders (``folder/job``)."""

    @property
    def url_path(self) -> str:
        return "job/" + "/job/".join(self.value.split("/"))


@dataclass(frozen=True, order=True)
class BranchName(_Name):
    """A version-control branch that owns reference jobs."""


@dataclass(frozen=True, order=True)
class RootName(_Name):
    """Logical name shared by a reference root job and its verification jobs."""


@dataclass(frozen=True, order=True)
class TestName(_Name):
    """Label of a verification job that runs a subset of the tests."""

    __test__ = False  # not a pytest test class


# Identifiers travel as bare JSON strings. Each type registers its own
# encoder/decoder pair here.
_ID_CODECS: dict[type, tuple[Callable[[Any], str], Callable[[str], Any]]] = {
    CommitId: (lambda c: c.value, CommitId),
    JobName: (lambda j: j.value, JobName),
    BranchName: (lambda b: b.value, BranchName),
    RootName: (lambda r: r.value, RootName),
    TestName: (lambda t: t.value, TestName),
}


def encode_id(value: Any) -> str:
    codec = _ID_CODECS.get(type(value))
    if codec is None:
        raise InvariantError(f"No identifier codec registered for {type(value).__name__}")
    return codec[0](value)


def decode_id(kind: type, raw: Any) -> Any:
    codec = _ID_CODECS.get(kind)
    if codec is None:
        raise InvariantError(f"No identifier codec registered for {kind.__name__}")
    if not isinstance(raw, str):
        raise ValidationError(kind.__name__, f"expected a JSON string, got {raw!r}")
    return codec[1](raw)


# ---------------------------------------------------------------------------
# Build results
# ---------------------------------------------------------------------------


class BuildResult(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"
    UNSTABLE = "unstable"
    NOT_BUILT = "not_built"

    @classmethod
    def from_wire(cls, value: str) -> BuildResult:
        try:
            return _WIRE_TO_RESULT[value]
        except (KeyError, TypeError):
            raise ValidationError("result", f"unknown build result {value!r}") from None

    def to_wire(self) -> str:
        try:
            return _RESULT_TO_WIRE[self]
        except KeyError:
            raise InvariantError(f"Build result {self!r} has no wire representation") from None


_RESULT_TO_WIRE: dict[BuildResult, str] = {
    BuildResult.SUCCESS: "SUCCESS",
    BuildResult.FAILURE: "FAILURE",
    BuildResult.ABORTED: "ABORTED",
    BuildResult.UNSTABLE: "UNSTABLE",
    BuildResult.NOT_BUILT: "NOT_BUILT",
}
_WIRE_TO_RESULT: dict[str, BuildResult] = {wire: result for result, wire in _RESULT_TO_WIRE.items()}

if set(_RESULT_TO_WIRE) != set(BuildResult) or len(_WIRE_TO_RESULT) != len(_RESULT_TO_WIRE):
    raise InvariantError("BuildResult wire table must map every member to a distinct string")


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class BuildReference:
    """Identifies one build of one job without fetching it."""

    job_name: JobName
    build_number: int

    def next(self) -> BuildReference:
        return BuildReference(self.job_name, self.build_number + 1)

    def __str__(self) -> str:
        return f"{self.job_name} #{self.build_number}"


def _require(payload: dict, key: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise ValidationError(key, "field is missing or null")
    return value


def _require_int(payload: dict, key: str, default: int | None = None) -> int:
    value = payload.get(key, default)
    if value is None:
        raise ValidationError(key, "field is missing or null")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(key, f"expected an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Build:
    """One build as reported by ``job/<name>/api/json?tree=builds[...]``.

    Only the first non-empty change-set group contributes commits; later
    groups (for example shared libraries checked out by the pipeline) are
    ignored.
    """

    id: str
    number: int
    result: BuildResult
    timestamp: datetime
    duration_ms: int = 0
    building: bool = False
    commits: tuple[CommitId, ...] = ()

    @property
    def is_successful(self) -> bool:
        return self.result is BuildResult.SUCCESS

    @property
    def has_test_results(self) -> bool:
        """True for completed builds whose test report can be trusted (SUCCESS or UNSTABLE)."""
        return not self.building and self.result in (BuildResult.SUCCESS, BuildResult.UNSTABLE)

    @property
    def end_time(self) -> datetime:
        return self.timestamp + timedelta(milliseconds=self.duration_ms)

    @classmethod
    def from_json(cls, payload: dict) -> Build:
        build_id = _require(payload, "id")
        if not isinstance(build_id, str) or not build_id:
            raise ValidationError("id", f"expected a non-empty string, got {build_id!r}")
        result = BuildResult.from_wire(_require(payload, "result"))
        number = _require_int(payload, "number")
        timestamp = from_epoch_ms(_require_int(payload, "timestamp"))
        duration_ms = _require_int(payload, "duration", default=0)
        building = bool(payload.get("building", False))

        commits: tuple[CommitId, ...] = ()
        for change_set in payload.get("changeSets") or []:
            commits = tuple(CommitId(_require(item, "commitId")) for item in change_set.get("items") or [])
            if commits:
                break

        return cls(
            id=build_id,
            number=number,
            result=result,
            timestamp=timestamp,
            duration_ms=duration_ms,
            building=building,
            commits=commits,
        )

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "result": self.result.to_wire(),
            "timestamp": to_epoch_ms(self.timestamp),
            "duration": self.duration_ms,
            "building": self.building,
            "changeSets": [{"items": [{"commitId": c.value} for c in self.commits]}] if self.commits else [],
        }

    def __str__(self) -> str:
        return f"Build(id={self.id}, number={self.number}, result={self.result.to_wire()})"


@dataclass(frozen=True)
class FailedTest:
    """A failing test case; identity is class name plus test name."""

    __test__ = False

    class_name: str
    test_name: str
    error_details: str = ""

    @property
    def key(self) -> str:
        return f"{self.class_name}::{self.test_name}"

    @classmethod
    def from_json(cls, payload: dict) -> FailedTest:
        class_name = _require(payload, "className")
        test_name = _require(payload, "name")
        return cls(class_name=class_name, test_name=test_name, error_details=payload.get("errorDetails") or "")

    def to_json(self) -> dict:
        return {"className": self.class_name, "name": self.test_name, "errorDetails": self.error_details}

    def __str__(self) -> str:
        return f"{self.class_name}.{self.test_name}"


@dataclass(frozen=True)
class _BaseBuild:
    job_name: JobName
    id: str
    build_number: int
    start_time: datetime
    end_time: datetime
    is_successful: bool

    @property
    def reference(self) -> BuildReference:
        return BuildReference(self.job_name, self.build_number)

    def __str__(self) -> str:
        return str(self.reference)


@dataclass(frozen=True)
class RootBuild(_BaseBuild):
    """A baseline build of a reference root job."""

    commits: tuple[CommitId, ...] = ()
    verification_jobs: tuple[JobName, ...] = ()

    @classmethod
    def from_build(cls, job_name: JobName, build: Build, verification_jobs=()) -> RootBuild:
        return cls(
            job_name=job_name,
            id=build.id,
            build_number=build.number,
            start_time=build.timestamp,
            end_time=build.end_time,
            is_successful=build.is_successful,
            commits=build.commits,
            verification_jobs=tuple(verification_jobs),
        )


@dataclass(frozen=True)
class TestBuild(_BaseBuild):
    """A completed verification build and the root build it was compared with."""

    __test__ = False

    root_build: BuildReference | None = None
    failed_tests: tuple[FailedTest, ...] = ()

    @classmethod
    def from_build(cls, job_name: JobName, build: Build, root_build: BuildReference, failed_tests) -> TestBuild:
        return cls(
            job_name=job_name,
            id=build.id,
            build_number=build.number,
            start_time=build.timestamp,
            end_time=build.end_time,
            is_successful=build.is_successful,
            root_build=root_build,
            failed_tests=tuple(failed_tests),
        )


# ---------------------------------------------------------------------------
# Job groups
# ---------------------------------------------------------------------------


@dataclass
class JobGroup:
    """Jobs sharing one root name: a reference job per branch plus verification jobs.

    ``verification_jobs`` is keyed by test label; the job that runs the whole
    suite has no label and is stored under ``None``.
    """

    reference_jobs: dict[BranchName, JobName] = field(default_factory=dict)
    verification_jobs: dict[TestName | None, JobName] = field(default_factory=dict)


@dataclass
class JobGroups:
    by_root: dict[RootName, JobGroup] = field(default_factory=dict)

    def verification_map(self) -> dict[str, list[str]]:
        """Return ``{referenceRootJob: [verificationJob, ...]}`` for the workspace cache."""
        mapping: dict[str, list[str]] = {}
        for group in self.by_root.values():
            names = sorted(encode_id(j) for j in group.verification_jobs.values())
            for reference_job in group.reference_jobs.values():
                mapping[encode_id(reference_job)] = names
        return dict(sorted(mapping.items()))


@dataclass(frozen=True)
class RootDiff:
    """A root paired with the reference job of a branch and the verification job chosen for it."""

    root_name: RootName
    reference_job: JobName
    verification_job: JobName


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RequestStatus(enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class VerificationRun:
    """A verification build triggered for a request."""

    root_job: JobName
    job: JobName
    build_number: int
    root_build_number: int | None = None

    @property
    def reference(self) -> BuildReference:
        return BuildReference(self.job, self.build_number)

    @property
    def root_reference(self) -> BuildReference | None:
        """The baseline build this run is compared with, when known."""
        if self.root_build_number is None:
            return None
        return BuildReference(self.root_job, self.root_build_number)

    def to_json(self) -> dict:
        payload = {"rootJob": encode_id(self.root_job), "job": encode_id(self.job), "build": self.build_number}
        if self.root_build_number is not None:
            payload["rootBuild"] = self.root_build_number
        return payload

    @classmethod
    def from_json(cls, payload: dict) -> VerificationRun:
        return cls(
            root_job=decode_id(JobName, _require(payload, "rootJob")),
            job=decode_id(JobName, _require(payload, "job")),
            build_number=_require_int(payload, "build"),
            root_build_number=_require_int(payload, "rootBuild") if payload.get("rootBuild") is not None else None,
        )


@dataclass
class Request:
    """Verify the working copy against the baseline of one branch.

    Created by the request manager, moved from pending to resolved by the
    synchronizer, then dropped from the workspace.
    """

    head_commit: CommitId
    reference_commit: CommitId
    branch: BranchName
    filters: list[str] = field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    baseline: dict[JobName, list[FailedTest]] = field(default_factory=dict)
    runs: list[VerificationRun] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, head_commit: CommitId, reference_commit: CommitId, branch: BranchName, filters) -> Request:
        return cls(head_commit=head_commit, reference_commit=reference_commit, branch=branch, filters=list(filters))

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.PENDING

    def resolve(self) -> None:
        if self.status is not RequestStatus.PENDING:
            raise InvariantError(f"Request {self.id} is already {self.status.value}")
        self.status = RequestStatus.RESOLVED

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "headCommit": encode_id(self.head_commit),
            "referenceCommit": encode_id(self.reference_commit),
            "branch": encode_id(self.branch),
            "filters": list(self.filters),
            "status": self.status.value,
            "baseline": {encode_id(job): [t.to_json() for t in tests] for job, tests in self.baseline.items()},
            "runs": [run.to_json() for run in self.runs],
        }

    @classmethod
    def from_json(cls, payload: dict) -> Request:
        try:
            status = RequestStatus(payload.get("status", RequestStatus.PENDING.value))
        except ValueError:
            raise InvariantError(f"Stored request has unknown status {payload.get('status')!r}") from None
        created_at = payload.get("createdAt")
        return cls(
            id=payload.get("id") or uuid.uuid4().hex,
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(timezone.utc),
            head_commit=decode_id(CommitId, _require(payload, "headCommit")),
            reference_commit=decode_id(CommitId, _require(payload, "referenceCommit")),
            branch=decode_id(BranchName, _require(payload, "branch")),
            filters=list(payload.get("filters") or []),
            status=status,
            baseline={
                decode_id(JobName, job): [FailedTest.from_json(t) for t in tests]
                for job, tests in (payload.get("baseline") or {}).items()
            },
            runs=[VerificationRun.from_json(r) for r in payload.get("runs") or []],
        )
