"""Tests for reading local history, with subprocess mocked out."""

from __future__ import annotations

import subprocess

import pytest

from faildiff_core.errors import GitError
from faildiff_core.git import GitRepo, run_git
from faildiff_core.model import CommitId

SHA_A = "a" * 40
SHA_B = "b" * 40


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


def test_run_git_returns_stripped_stdout(mocker):
    run = mocker.patch("faildiff_core.git.subprocess.run", return_value=_completed("out\n"))
    assert run_git(["status"], cwd="/repo") == "out"
    assert run.call_args.args[0] == ["git", "status"]
    assert run.call_args.kwargs["cwd"] == "/repo"


def test_run_git_failure(mocker):
    mocker.patch("faildiff_core.git.subprocess.run", return_value=_completed(returncode=128, stderr="fatal: bad"))
    with pytest.raises(GitError, match="fatal: bad"):
        run_git(["log"])


def test_git_not_installed(mocker):
    mocker.patch("faildiff_core.git.subprocess.run", side_effect=FileNotFoundError("git"))
    with pytest.raises(GitError, match="not found"):
        run_git(["log"])


def test_not_a_repository(mocker):
    mocker.patch("faildiff_core.git.subprocess.run", return_value=_completed(returncode=128, stderr="not a git repo"))
    with pytest.raises(GitError, match="No git repository"):
        GitRepo("/tmp/nowhere")


def test_get_last_commits_newest_first(mocker):
    run = mocker.patch(
        "faildiff_core.git.subprocess.run",
        side_effect=[_completed("/repo\n"), _completed(f"{SHA_A}\n{SHA_B}\n")],
    )
    commits = GitRepo("/repo").get_last_commits(2)

    assert commits == [CommitId(SHA_A), CommitId(SHA_B)]
    assert run.call_args.args[0] == ["git", "rev-list", "--max-count=2", "HEAD"]
