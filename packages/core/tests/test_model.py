"""Tests for the faildiff value types and their JSON wire format."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from faildiff_core.errors import InvariantError, ValidationError
from faildiff_core.model import (
    BranchName,
    Build,
    BuildReference,
    BuildResult,
    CommitId,
    FailedTest,
    JobGroup,
    JobGroups,
    JobName,
    Request,
    RequestStatus,
    RootName,
    TestName,
    VerificationRun,
    decode_id,
    encode_id,
    from_epoch_ms,
    to_epoch_ms,
)

SHA_A = "a" * 40
SHA_B = "b" * 40


def _build_payload(**overrides):
    payload = {
        "id": "42",
        "number": 42,
        "result": "UNSTABLE",
        "timestamp": 1_700_000_000_123,
        "duration": 60_000,
        "building": False,
        "changeSets": [
            {"items": [{"commitId": SHA_A}, {"commitId": SHA_B}]},
            {"items": [{"commitId": "c" * 40}]},
        ],
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestCommitId:
    def test_accepts_full_lowercase_sha(self):
        assert CommitId(SHA_A).short() == "aaaaaaa"

    @pytest.mark.parametrize("value", ["", "abc", "A" * 40, "g" * 40, "a" * 41])
    def test_rejects_malformed_sha(self, value):
        with pytest.raises(ValidationError) as exc_info:
            CommitId(value)
        assert exc_info.value.field == "commitId"

    def test_ordered_by_value(self):
        assert sorted([CommitId(SHA_B), CommitId(SHA_A)]) == [CommitId(SHA_A), CommitId(SHA_B)]


class TestNames:
    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            JobName("  ")

    def test_folder_job_url_path(self):
        assert JobName("team/main").url_path == "job/team/job/main"

    def test_names_compare_ordinally(self):
        assert sorted([BranchName("main"), BranchName("Main"), BranchName("dev")]) == [
            BranchName("Main"),
            BranchName("dev"),
            BranchName("main"),
        ]

    def test_id_codec_is_bare_string(self):
        assert encode_id(JobName("main-build")) == "main-build"
        assert decode_id(RootName, "build") == RootName("build")
        assert decode_id(CommitId, SHA_A) == CommitId(SHA_A)

    def test_decode_rejects_non_string(self):
        with pytest.raises(ValidationError):
            decode_id(TestName, 3)

    def test_encode_unknown_type_is_invariant_error(self):
        with pytest.raises(InvariantError):
            encode_id(42)


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


class TestBuildResult:
    def test_wire_mapping_covers_every_member(self):
        for result in BuildResult:
            assert BuildResult.from_wire(result.to_wire()) is result

    def test_unknown_wire_value(self):
        with pytest.raises(ValidationError) as exc_info:
            BuildResult.from_wire("EXPLODED")
        assert exc_info.value.field == "result"


class TestBuild:
    def test_from_json_takes_first_change_set_only(self):
        build = Build.from_json(_build_payload())
        assert build.commits == (CommitId(SHA_A), CommitId(SHA_B))
        assert build.result is BuildResult.UNSTABLE
        assert build.has_test_results
        assert not build.is_successful

    def test_first_non_empty_change_set_used(self):
        build = Build.from_json(_build_payload(changeSets=[{"items": []}, {"items": [{"commitId": SHA_B}]}]))
        assert build.commits == (CommitId(SHA_B),)

    def test_round_trip(self):
        original = Build.from_json(_build_payload())
        decoded = Build.from_json(original.to_json())
        assert decoded.id == original.id
        assert decoded.number == original.number
        assert decoded.result is original.result
        assert to_epoch_ms(decoded.timestamp) == 1_700_000_000_123
        assert decoded.commits == original.commits

    def test_round_trip_without_commits(self):
        build = Build.from_json(_build_payload(changeSets=[]))
        assert Build.from_json(build.to_json()).commits == ()

    @pytest.mark.parametrize("field", ["id", "result"])
    def test_missing_field_named(self, field):
        payload = _build_payload()
        del payload[field]
        with pytest.raises(ValidationError) as exc_info:
            Build.from_json(payload)
        assert exc_info.value.field == field

    @pytest.mark.parametrize("field", ["id", "result"])
    def test_null_field_named(self, field):
        with pytest.raises(ValidationError) as exc_info:
            Build.from_json(_build_payload(**{field: None}))
        assert exc_info.value.field == field

    def test_malformed_commit_rejected(self):
        with pytest.raises(ValidationError):
            Build.from_json(_build_payload(changeSets=[{"items": [{"commitId": "nope"}]}]))

    def test_running_build_has_no_test_results(self):
        build = Build.from_json(_build_payload(result="SUCCESS", building=True))
        assert not build.has_test_results

    def test_end_time(self):
        build = Build.from_json(_build_payload())
        assert (build.end_time - build.timestamp).total_seconds() == 60

    def test_epoch_helpers_are_exact(self):
        moment = from_epoch_ms(1_700_000_000_999)
        assert moment.tzinfo is timezone.utc
        assert to_epoch_ms(moment) == 1_700_000_000_999


def test_build_reference_next():
    ref = BuildReference(JobName("ondemand-build"), 7)
    assert ref.next() == BuildReference(JobName("ondemand-build"), 8)
    assert str(ref) == "ondemand-build #7"


def test_failed_test_json():
    test = FailedTest.from_json({"className": "ClassA", "name": "Test1", "errorDetails": None, "status": "FAILED"})
    assert test.key == "ClassA::Test1"
    assert test.error_details == ""
    assert FailedTest.from_json(test.to_json()) == test


def test_verification_map_lists_jobs_per_reference_job():
    groups = JobGroups(
        by_root={
            RootName("build"): JobGroup(
                reference_jobs={BranchName("main"): JobName("main-build"), BranchName("dev"): JobName("dev-build")},
                verification_jobs={None: JobName("ondemand-build"), TestName("unit"): JobName("ondemand-build-unit")},
            )
        }
    )
    assert groups.verification_map() == {
        "dev-build": ["ondemand-build", "ondemand-build-unit"],
        "main-build": ["ondemand-build", "ondemand-build-unit"],
    }


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequest:
    def _request(self):
        request = Request.create(CommitId(SHA_A), CommitId(SHA_B), BranchName("main"), ["unit"])
        request.baseline = {JobName("main-build"): [FailedTest("ClassA", "Test1", "x")]}
        request.runs = [VerificationRun(JobName("main-build"), JobName("ondemand-build-unit"), 12, root_build_number=4)]
        return request

    def test_json_round_trip(self):
        request = self._request()
        restored = Request.from_json(request.to_json())
        assert restored == request

    def test_json_shape(self):
        payload = self._request().to_json()
        assert payload["headCommit"] == SHA_A
        assert payload["referenceCommit"] == SHA_B
        assert payload["status"] == "pending"
        assert payload["baseline"] == {"main-build": [{"className": "ClassA", "name": "Test1", "errorDetails": "x"}]}
        assert payload["runs"] == [{"rootJob": "main-build", "job": "ondemand-build-unit", "build": 12, "rootBuild": 4}]

    def test_resolve_once(self):
        request = self._request()
        request.resolve()
        assert request.status is RequestStatus.RESOLVED
        with pytest.raises(InvariantError):
            request.resolve()

    def test_unknown_stored_status(self):
        payload = self._request().to_json()
        payload["status"] = "lost"
        with pytest.raises(InvariantError):
            Request.from_json(payload)

    def test_created_at_is_utc(self):
        assert self._request().created_at.tzinfo is not None
        assert isinstance(self._request().created_at, datetime)
